"""电路图分析 — 图片 → 多模态模型 → 去围栏 → JSON → 结构校验。"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from circuitwise.errors import ImageTooLargeError, MissingImageError, ModelOutputError
from circuitwise.parsing import parse_model_json
from circuitwise.prompt import INSTRUCTION
from circuitwise.schema import AnalysisResult

if TYPE_CHECKING:
    from circuitwise.config import AnalyzerConfig
    from circuitwise.vision import VisionClient

logger = logging.getLogger(__name__)

_FALLBACK_MIME = "application/octet-stream"
_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]*)$")


@dataclass
class ImageUpload:
    filename: str
    content_type: str
    data: bytes

    @classmethod
    def from_parts(cls, filename: str | None, content_type: str | None, data: bytes) -> ImageUpload:
        """保留上传的 MIME 类型，缺失时按文件名推断。"""
        filename = filename or ""
        mime = content_type or mimetypes.guess_type(filename)[0] or _FALLBACK_MIME
        return cls(filename=filename, content_type=mime, data=data)

    @classmethod
    def from_data_url(cls, url: str, filename: str = "") -> ImageUpload | None:
        """从预览用的 data: URL 还原图片，格式不对返回 None。"""
        match = _DATA_URL.match(url.strip())
        if not match:
            return None
        try:
            data = base64.b64decode("".join(match.group("data").split()), validate=True)
        except (binascii.Error, ValueError):
            return None
        return cls(filename=filename, content_type=match.group("mime"), data=data)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


class CircuitAnalyzer:
    """单次分析：无重试、无缓存，失败统一抛 AnalysisError 子类。"""

    def __init__(
        self,
        vision: VisionClient,
        config: AnalyzerConfig,
        instruction: str = INSTRUCTION,
    ) -> None:
        self.vision = vision
        self.config = config
        self.instruction = instruction

    async def analyze(self, upload: ImageUpload | None) -> AnalysisResult:
        if upload is None or not upload.data:
            raise MissingImageError()
        size = len(upload.data)
        if size > self.config.max_image_bytes:
            raise ImageTooLargeError(
                f"Image is too large ({size} bytes, limit {self.config.max_image_bytes})"
            )

        logger.info("Analyzing %r (%s, %d bytes)", upload.filename, upload.content_type, size)
        text = await self.vision.generate(self.instruction, upload.data, upload.content_type)

        try:
            result = AnalysisResult.from_model_output(parse_model_json(text))
        except ModelOutputError as e:
            logger.warning("Rejected model output: %s | %s", e, text[:200])
            raise

        if not result.wire_count.is_consistent:
            logger.info(
                "Model wire totals disagree: %s + %s != %s",
                result.wire_count.total_circuit_connections,
                result.wire_count.total_power_connections,
                result.wire_count.overall_total,
            )
        return result
