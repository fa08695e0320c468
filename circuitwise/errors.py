"""分析流程异常 — 每个异常携带面向用户的消息与 HTTP 状态码。"""

from __future__ import annotations


class AnalysisError(Exception):
    """分析失败的基类。"""

    status_code: int = 500

    def __init__(self, message: str = "Something went wrong") -> None:
        super().__init__(message)
        self.message = message


class MissingImageError(AnalysisError):
    status_code = 400

    def __init__(self, message: str = "No image uploaded") -> None:
        super().__init__(message)


class ImageTooLargeError(AnalysisError):
    pass


class ModelOutputError(AnalysisError):
    """模型输出不是合法 JSON 或不符合结果结构。"""


class VisionError(AnalysisError):
    """上游多模态服务调用失败。"""
