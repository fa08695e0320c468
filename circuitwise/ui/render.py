"""页面渲染 — 分析结果 → 卡片视图模型 → HTML。

结果映射是防御式的：任何子字段缺失或为 null 都用占位文本代替，
所以同一套代码既能渲染校验后的 AnalysisResult，也能渲染原始 dict。
"""

from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass, field
from html import escape
from typing import Any

from circuitwise.schema import AnalysisResult
from circuitwise.ui.state import ToolPhase, ToolState

PLACEHOLDER = "N/A"


# ────────────────────── 视图模型 ──────────────────────

@dataclass
class ComponentCard:
    type: str
    count: str


@dataclass
class ICCard:
    label: str
    type: str
    pins: list[str] = field(default_factory=list)


@dataclass
class ConnectionCard:
    source: str
    target: str


@dataclass
class WireTotals:
    circuit: str
    power: str
    overall: str
    consistent: bool = True


@dataclass
class ResultView:
    components: list[ComponentCard]
    ics: list[ICCard]
    connections: list[ConnectionCard]
    wires: WireTotals
    assumptions: list[str]


def _text(value: Any, placeholder: str = PLACEHOLDER) -> str:
    if value is None or value == "":
        return placeholder
    return str(value)


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _component_card(item: Any) -> ComponentCard:
    if isinstance(item, Mapping):
        return ComponentCard(type=_text(item.get("type"), "Unknown"), count=_text(item.get("count"), "x"))
    if isinstance(item, str):
        return ComponentCard(type=item, count="x")
    return ComponentCard(type="Unknown", count="x")


def _ic_card(label: Any, details: Any) -> ICCard:
    if isinstance(details, Mapping):
        pins = details.get("pins")
        return ICCard(
            label=_text(label),
            type=_text(details.get("type")),
            pins=[str(p) for p in pins] if isinstance(pins, list) else [],
        )
    return ICCard(label=_text(label), type=_text(details))


def _wire_totals(wire_count: Any) -> WireTotals:
    if not isinstance(wire_count, Mapping):
        return WireTotals(PLACEHOLDER, PLACEHOLDER, PLACEHOLDER)
    circuit = wire_count.get("total_circuit_connections")
    power = wire_count.get("total_power_connections")
    overall = wire_count.get("overall_total")
    parts = [_as_int(circuit), _as_int(power), _as_int(overall)]
    consistent = None in parts or parts[0] + parts[1] == parts[2]
    return WireTotals(_text(circuit), _text(power), _text(overall), consistent)


def build_cards(result: AnalysisResult | Mapping[str, Any]) -> ResultView:
    """把分析结果映射为卡片视图模型。"""
    data = result.to_response() if isinstance(result, AnalysisResult) else result

    components = data.get("component_summary")
    ics = data.get("ic_assignment")
    connections = data.get("pin_connections")
    assumptions = data.get("assumptions")

    return ResultView(
        components=[_component_card(c) for c in components] if isinstance(components, list) else [],
        ics=[_ic_card(k, v) for k, v in ics.items()] if isinstance(ics, Mapping) else [],
        connections=[
            ConnectionCard(source=_text(c.get("from")), target=_text(c.get("to")))
            for c in connections
            if isinstance(c, Mapping)
        ]
        if isinstance(connections, list)
        else [],
        wires=_wire_totals(data.get("wire_count")),
        assumptions=[str(a) for a in assumptions if a is not None]
        if isinstance(assumptions, list)
        else [],
    )


# ────────────────────── HTML ──────────────────────

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>CircuitWise</title>
<meta name="description" content="Automated Wire counter &amp; Cost Estimator for Digital Circuits">
<link rel="stylesheet" href="/static/style.css">
<script src="/static/tool.js" defer></script>
</head>
<body>
<main>
{hero}
{tool}
{footer}
</main>
</body>
</html>
"""

_HERO = """<section class="hero" id="home">
  <h1 class="gradient">Welcome to CircuitWise</h1>
  <p class="tagline">CircuitWise is an intelligent AI tool that automates wire count, estimates circuit cost,
  and provides detailed connection instructions, all from your digital circuit diagrams.</p>
  <a class="button primary" href="#tool">Get Started</a>
</section>"""


def _grid(cards: list[str], empty: str) -> str:
    if not cards:
        return f'<p class="muted">{escape(empty)}</p>'
    return '<div class="grid">' + "".join(cards) + "</div>"


def render_result(view: ResultView) -> str:
    components = [
        f'<div class="card"><h4>{escape(c.type)}</h4>'
        f'<div class="value">Count: <strong>{escape(c.count)}</strong></div></div>'
        for c in view.components
    ]
    ics = []
    for ic in view.ics:
        pins = ""
        if ic.pins:
            pins = f'<div class="pins">Pins: {escape(", ".join(ic.pins))}</div>'
        ics.append(
            f'<div class="card"><div class="label">Label</div><h4>{escape(ic.label)}</h4>'
            f'<div class="value"><span>Type:</span> {escape(ic.type)}</div>{pins}</div>'
        )
    connections = [
        f'<div class="card"><div class="label">From</div><p class="value">{escape(c.source)}</p>'
        f'<div class="label">To</div><p class="value">{escape(c.target)}</p></div>'
        for c in view.connections
    ]
    wires = view.wires
    mismatch = ""
    if not wires.consistent:
        mismatch = (
            '<p class="warning">Overall total differs from the sum of circuit and power '
            "connections (as estimated by the model).</p>"
        )
    assumptions = "".join(f"<li>{escape(a)}</li>" for a in view.assumptions)

    return f"""<div class="result" id="result">
  <h3>Components</h3>
  {_grid(components, "No components reported.")}
  <h3>IC Assignments</h3>
  {_grid(ics, "No ICs reported.")}
  <h3>Pin Connections</h3>
  {_grid(connections, "No connections reported.")}
  <h3>Wire Count</h3>
  <div class="grid three">
    <div class="card center"><p class="label">Total Circuit Connections</p><p class="big">{escape(wires.circuit)}</p></div>
    <div class="card center"><p class="label">Total Power Connections</p><p class="big">{escape(wires.power)}</p></div>
    <div class="card center"><p class="label">Overall Total</p><p class="big">{escape(wires.overall)}</p></div>
  </div>
  {mismatch}
  <h3>Assumptions</h3>
  <ul class="assumptions">{assumptions}</ul>
</div>"""


def render_tool(state: ToolState) -> str:
    image = state.image
    if state.preview_url is not None and image is not None:
        box = f"""<div class="preview">
      <img src="{escape(state.preview_url)}" alt="Uploaded Preview">
      <a class="remove" href="/#tool" data-remove title="Remove image">&#10006;</a>
      <p class="filename">{escape(image.filename)}</p>
      <input type="hidden" name="image_data" value="{escape(state.preview_url)}">
      <input type="hidden" name="image_name" value="{escape(image.filename)}">
    </div>"""
    else:
        box = """<div class="placeholder">
      <p class="lead">Drag &amp; Drop your image here</p>
      <p class="muted">or click to select (PNG, JPG, WebP)</p>
    </div>"""

    disabled = "" if state.analyze_enabled else " disabled"
    result = ""
    if state.phase == ToolPhase.RESULT and state.result is not None:
        result = render_result(build_cards(state.result))
    error = ""
    if state.error:
        error = f'<p class="error" role="alert">{escape(state.error)}</p>'

    return f"""<section class="tool" id="tool">
  <div class="heading">
    <h2 class="gradient">Upload Your Circuit Diagram</h2>
    <p class="muted">Drop a circuit image or tap to select. CircuitWise will analyze wire counts, logic ICs, and connections.</p>
  </div>
  <form id="tool-form" method="post" action="/#tool" enctype="multipart/form-data" data-phase="{state.phase.value}">
    <div class="dropzone" id="dropzone">
      <input type="file" name="image" accept="image/*" id="fileInput" hidden>
      {box}
    </div>
    <div class="actions">
      <label class="button secondary" for="cameraInput">Take Photo</label>
      <input type="file" accept="image/*" capture="environment" id="cameraInput" hidden>
      <button type="submit" class="button primary" id="analyzeButton"{disabled}>{escape(state.analyze_label)}</button>
    </div>
  </form>
  {result}
  {error}
</section>"""


def render_footer(year: int | None = None) -> str:
    year = year or datetime.date.today().year
    return f"""<footer class="footer">
  <h2 class="gradient">Built by Team - Group 3</h2>
  <p class="muted">Proudly engineered for CircuitWise. Made with logic gates.</p>
  <div class="copyright">&copy; {year} CircuitWise | All Rights Reserved</div>
</footer>"""


def render_page(state: ToolState) -> str:
    """渲染完整页面：hero + 上传分析区 + footer。"""
    return _PAGE.format(hero=_HERO, tool=render_tool(state), footer=render_footer())
