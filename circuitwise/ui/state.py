"""上传分析界面状态 — 状态机 + 请求代次令牌。"""

from __future__ import annotations

import base64
import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from circuitwise.analyzer import ImageUpload
    from circuitwise.schema import AnalysisResult

ANALYZE_LABEL = "Analyze Circuit"
ANALYZING_LABEL = "Analyzing..."


class ToolPhase(enum.Enum):
    IDLE = "idle"
    SELECTED = "selected"
    ANALYZING = "analyzing"
    RESULT = "result"
    ERRORED = "errored"


_VALID_TRANSITIONS: dict[ToolPhase, set[ToolPhase]] = {
    ToolPhase.IDLE: {ToolPhase.SELECTED, ToolPhase.ERRORED},
    ToolPhase.SELECTED: {ToolPhase.SELECTED, ToolPhase.ANALYZING, ToolPhase.IDLE},
    ToolPhase.ANALYZING: {
        ToolPhase.RESULT,
        ToolPhase.ERRORED,
        ToolPhase.SELECTED,
        ToolPhase.IDLE,
    },
    ToolPhase.RESULT: {ToolPhase.SELECTED, ToolPhase.ANALYZING, ToolPhase.IDLE},
    ToolPhase.ERRORED: {ToolPhase.SELECTED, ToolPhase.ANALYZING, ToolPhase.IDLE},
}


class ToolState:
    """单个上传分析视图的状态。

    每次选择、移除或发起分析都会推进 generation；
    complete/fail 只接受当前 generation 的令牌，过期响应被丢弃。
    """

    def __init__(self) -> None:
        self.phase: ToolPhase = ToolPhase.IDLE
        self.image: ImageUpload | None = None
        self.result: AnalysisResult | None = None
        self.error: str | None = None
        self.generation: int = 0

    def transition_to(self, new_phase: ToolPhase) -> None:
        """状态机转换，校验合法路径。"""
        allowed = _VALID_TRANSITIONS.get(self.phase, set())
        if new_phase not in allowed:
            raise ValueError(
                f"Invalid state transition: {self.phase.value} → {new_phase.value}"
            )
        self.phase = new_phase

    # ────────────────────── 用户操作 ──────────────────────

    def select_image(self, upload: ImageUpload) -> bool:
        """选择图片（文件选择 / 拖放 / 拍照）。非图片被忽略，返回 False。"""
        if not upload.is_image:
            return False
        self.generation += 1
        self.image = upload
        self.result = None
        self.error = None
        self.transition_to(ToolPhase.SELECTED)
        return True

    def remove_image(self) -> None:
        self.generation += 1
        self.image = None
        self.result = None
        self.error = None
        if self.phase != ToolPhase.IDLE:
            self.transition_to(ToolPhase.IDLE)

    def reject_input(self, message: str) -> None:
        """缺少输入时只显示错误文本，不发起请求。"""
        self.generation += 1
        self.result = None
        self.error = message
        self.transition_to(ToolPhase.ERRORED)

    def begin_analysis(self) -> int:
        """发起分析，返回本次请求的令牌。"""
        if self.image is None:
            raise ValueError("No image selected")
        self.transition_to(ToolPhase.ANALYZING)
        self.generation += 1
        self.result = None
        self.error = None
        return self.generation

    # ────────────────────── 响应回填 ──────────────────────

    def is_current(self, token: int) -> bool:
        return token == self.generation and self.phase == ToolPhase.ANALYZING

    def complete(self, token: int, result: AnalysisResult) -> bool:
        if not self.is_current(token):
            return False
        self.result = result
        self.transition_to(ToolPhase.RESULT)
        return True

    def fail(self, token: int, message: str) -> bool:
        if not self.is_current(token):
            return False
        self.error = message or "Unexpected error"
        self.transition_to(ToolPhase.ERRORED)
        return True

    # ────────────────────── 视图属性 ──────────────────────

    @property
    def is_busy(self) -> bool:
        return self.phase == ToolPhase.ANALYZING

    @property
    def analyze_enabled(self) -> bool:
        return self.image is not None and not self.is_busy

    @property
    def analyze_label(self) -> str:
        return ANALYZING_LABEL if self.is_busy else ANALYZE_LABEL

    @property
    def preview_url(self) -> str | None:
        if self.image is None:
            return None
        encoded = base64.b64encode(self.image.data).decode("ascii")
        return f"data:{self.image.content_type};base64,{encoded}"
