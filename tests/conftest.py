"""共享 fixtures — 测试配置、PNG 图片、mock Vision 客户端等。"""

from __future__ import annotations

import json
import struct
import zlib
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from circuitwise.analyzer import ImageUpload
from circuitwise.config import Settings, load_settings

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ────────────────────── 图片 ──────────────────────


def make_png(width: int = 10, height: int = 10) -> bytes:
    """生成黑白棋盘格 8-bit 灰度 PNG。"""

    def chunk(tag: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(tag + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", crc)

    rows = b"".join(
        b"\x00" + bytes(255 * ((x + y) % 2) for x in range(width)) for y in range(height)
    )
    header = struct.pack(">IIBBBBB", width, height, 8, 0, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(rows))
        + chunk(b"IEND", b"")
    )


# ────────────────────── Fixtures ──────────────────────


@pytest.fixture
def test_config() -> Settings:
    """加载测试专用配置。"""
    return load_settings(FIXTURES_DIR / "test_config.toml")


@pytest.fixture
def png_bytes() -> bytes:
    """10×10 黑白 PNG。"""
    return make_png()


@pytest.fixture
def png_upload(png_bytes) -> ImageUpload:
    return ImageUpload(filename="circuit.png", content_type="image/png", data=png_bytes)


@pytest.fixture
def sample_result_data() -> dict:
    """测试用分析结果（模型原样输出）。"""
    return json.loads((FIXTURES_DIR / "analysis_sample.json").read_text(encoding="utf-8"))


@pytest.fixture
def sample_model_text(sample_result_data) -> str:
    return json.dumps(sample_result_data)


@pytest.fixture
def mock_vision(sample_model_text) -> MagicMock:
    """Mock VisionClient — 返回固定 JSON 文本。"""
    vision = MagicMock()
    vision.model = "gemini-test"
    vision.has_credential = True
    vision.start = AsyncMock()
    vision.close = AsyncMock()
    vision.generate = AsyncMock(return_value=sample_model_text)
    return vision
