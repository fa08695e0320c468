"""分析结果结构 — Pydantic 模型，校验并规整模型返回的 JSON。"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_serializer,
    model_validator,
)

from circuitwise.errors import ModelOutputError


def _none_to(default_factory):
    def _validate(value: Any) -> Any:
        return default_factory() if value is None else value

    return BeforeValidator(_validate)


# ────────────────────── 子结构 ──────────────────────

class _Lenient(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)


class ComponentItem(_Lenient):
    type: str | None = None
    count: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_bare_string(cls, data: Any) -> Any:
        # "AND Gate" → {"type": "AND Gate", "count": 1}
        if isinstance(data, str):
            return {"type": data, "count": 1}
        return data


class ICAssignment(_Lenient):
    type: str | None = None
    pins: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_bare_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"type": data}
        return data

    @model_serializer(mode="wrap")
    def _drop_missing_pins(self, handler):
        data = handler(self)
        if self.pins is None:
            data.pop("pins", None)
        return data


class PinConnection(_Lenient):
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None


class WireCount(_Lenient):
    total_circuit_connections: int | None = None
    total_power_connections: int | None = None
    overall_total: int | None = None

    @model_validator(mode="after")
    def _fill_missing_total(self) -> WireCount:
        # 模型给出的总数原样保留，只在缺失时补上两项之和
        if (
            self.overall_total is None
            and self.total_circuit_connections is not None
            and self.total_power_connections is not None
        ):
            self.overall_total = self.total_circuit_connections + self.total_power_connections
        return self

    @property
    def is_consistent(self) -> bool:
        """overall_total 是否等于两项之和；任一缺失视为无法判断，返回 True。"""
        parts = (self.total_circuit_connections, self.total_power_connections, self.overall_total)
        if any(p is None for p in parts):
            return True
        return self.total_circuit_connections + self.total_power_connections == self.overall_total


def _ic_list_to_mapping(value: Any) -> Any:
    """兼容模型把 ic_assignment 写成列表的情况。"""
    if not isinstance(value, list):
        return value
    mapping: dict[str, Any] = {}
    for idx, item in enumerate(value, start=1):
        label = None
        if isinstance(item, dict):
            label = item.get("label") or item.get("name")
        key = str(label) if label else f"IC{idx}"
        # 重名标签加序号，不覆盖前面的 IC
        if key in mapping:
            n = 2
            while f"{key}#{n}" in mapping:
                n += 1
            key = f"{key}#{n}"
        mapping[key] = item
    return mapping


# ────────────────────── 顶层结果 ──────────────────────

class AnalysisResult(_Lenient):
    component_summary: Annotated[list[ComponentItem], _none_to(list)] = Field(default_factory=list)
    ic_assignment: Annotated[
        dict[str, ICAssignment], _none_to(dict), BeforeValidator(_ic_list_to_mapping)
    ] = Field(default_factory=dict)
    pin_connections: Annotated[list[PinConnection], _none_to(list)] = Field(default_factory=list)
    wire_count: Annotated[WireCount, _none_to(WireCount)] = Field(default_factory=WireCount)
    assumptions: Annotated[list[str], _none_to(list)] = Field(default_factory=list)

    @classmethod
    def from_model_output(cls, data: Any) -> AnalysisResult:
        """校验模型解析出的 JSON，不合法则抛 ModelOutputError。"""
        if not isinstance(data, dict):
            raise ModelOutputError(
                f"Model response must be a JSON object, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            loc = ".".join(str(p) for p in first["loc"]) or "<root>"
            raise ModelOutputError(
                f"Model response does not match the expected schema: {loc}: {first['msg']}"
            ) from e

    def to_response(self) -> dict[str, Any]:
        """序列化为 API 响应体，pin_connections 使用 "from" 键。"""
        return self.model_dump(by_alias=True)
