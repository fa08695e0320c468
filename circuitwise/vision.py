"""图片分析 — Gemini generateContent REST 接口的多模态客户端。"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any

import httpx

from circuitwise.errors import VisionError

if TYPE_CHECKING:
    from circuitwise.config import GeminiConfig

logger = logging.getLogger(__name__)


class VisionClient:
    """Gemini 多模态客户端：一段指令 + 一张内联图片 → 文本。

    每个进程一个实例，在 lifespan 中创建，凭证由调用方显式传入。
    """

    def __init__(self, config: GeminiConfig, api_key: str = "") -> None:
        self.config = config
        self._api_key = api_key
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url, timeout=httpx.Timeout(self.config.timeout)
        )
        if not self._api_key:
            logger.warning("Gemini API key is not configured, every analysis will fail")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def has_credential(self) -> bool:
        return bool(self._api_key)

    def build_payload(self, instruction: str, image: bytes, mime_type: str) -> dict[str, Any]:
        """组装 generateContent 请求体（指令文本 + base64 内联图片）。"""
        payload: dict[str, Any] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": instruction},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image).decode("ascii"),
                            }
                        },
                    ],
                }
            ],
        }
        generation_config: dict[str, Any] = {}
        if self.config.temperature is not None:
            generation_config["temperature"] = self.config.temperature
        if self.config.response_mime_type:
            generation_config["responseMimeType"] = self.config.response_mime_type
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    async def generate(self, instruction: str, image: bytes, mime_type: str) -> str:
        """单次调用 generateContent，返回模型文本。不重试。"""
        if not self._client:
            raise RuntimeError("Vision client not started")
        if not self._api_key:
            raise VisionError("Gemini API key is not configured")

        payload = self.build_payload(instruction, image, mime_type)
        logger.info(
            "Vision request: model=%s mime=%s bytes=%d", self.config.model, mime_type, len(image)
        )

        try:
            resp = await self._client.post(
                f"/models/{self.config.model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as e:
            raise VisionError(f"Vision service request failed: {e}") from e

        if resp.status_code >= 400:
            raise VisionError(
                f"Vision service returned HTTP {resp.status_code}: {_error_detail(resp)}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise VisionError("Vision service returned a non-JSON envelope") from e

        return extract_text(data)


def extract_text(data: dict[str, Any]) -> str:
    """从 generateContent 响应中取出第一个候选的全部文本片段。"""
    candidates = data.get("candidates") or []
    if not candidates:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise VisionError(f"Vision service blocked the request: {block_reason}")
        raise VisionError("Vision service returned no candidates")

    first = candidates[0]
    parts = (first.get("content") or {}).get("parts") or []
    # thinking 模型可能附带 thought 片段，不属于答案
    text = "".join(
        p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought")
    )
    if not text.strip():
        raise VisionError(
            f"Vision service returned an empty response (finish reason: {first.get('finishReason', 'unknown')})"
        )
    return text


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return resp.reason_phrase
