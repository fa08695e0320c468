"""模型输出解析 — 去掉代码围栏后按 JSON 解析。"""

from __future__ import annotations

import json
import re
from typing import Any

from circuitwise.errors import ModelOutputError

_OPEN_FENCE = re.compile(r"^```[ \t]*(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSE_FENCE = re.compile(r"\n?```\s*$")


def strip_code_fence(text: str) -> str:
    """去掉首尾空白以及可选的 ```json ... ``` 包裹。

    只有以 ``` 开头的文本才会处理结尾围栏，正文中的反引号保持不变。
    """
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = _OPEN_FENCE.sub("", text, count=1)
    text = _CLOSE_FENCE.sub("", text, count=1)
    return text.strip()


def parse_model_json(text: str) -> Any:
    """解析模型文本输出，失败抛 ModelOutputError。"""
    cleaned = strip_code_fence(text)
    if not cleaned:
        raise ModelOutputError("Model returned an empty response")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ModelOutputError(f"Model response is not valid JSON: {e.msg} (line {e.lineno} column {e.colno})") from e
