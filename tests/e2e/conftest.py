"""E2E 测试专用 fixtures — mock Vision 客户端，使用 TestClient。"""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient

from circuitwise.app import create_app

TOP_LEVEL_KEYS = {
    "component_summary",
    "ic_assignment",
    "pin_connections",
    "wire_count",
    "assumptions",
}


# ────────────────────── Assertion Helpers ──────────────────────


def assert_result_shape(body: dict) -> None:
    """断言响应具有完整的结果结构（只看形状，不比较数值）。"""
    assert set(body) == TOP_LEVEL_KEYS, f"Unexpected keys: {sorted(body)}"
    assert isinstance(body["component_summary"], list)
    assert isinstance(body["ic_assignment"], dict)
    assert isinstance(body["pin_connections"], list)
    assert isinstance(body["assumptions"], list)
    for key in ("total_circuit_connections", "total_power_connections", "overall_total"):
        assert key in body["wire_count"], f"wire_count missing '{key}'"


def assert_error_body(resp, status_code: int) -> None:
    assert resp.status_code == status_code, resp.text
    body = resp.json()
    assert isinstance(body.get("error"), str) and body["error"], body


# ────────────────────── Fixtures ──────────────────────


@pytest.fixture
def e2e_app_and_client(test_config, mock_vision):
    """创建注入 mock Vision 的 FastAPI 应用和 TestClient。"""
    app = create_app(test_config, vision=mock_vision)
    with TestClient(app) as client:
        yield app, client


@pytest.fixture
def e2e_app(e2e_app_and_client):
    app, _ = e2e_app_and_client
    return app


@pytest.fixture
def client(e2e_app_and_client) -> TestClient:
    _, client = e2e_app_and_client
    return client


@pytest.fixture
def image_files(png_bytes):
    """multipart 上传字段工厂。"""

    def _files(name: str = "circuit.png", data: bytes | None = None, mime: str = "image/png"):
        return {"image": (name, png_bytes if data is None else data, mime)}

    return _files
