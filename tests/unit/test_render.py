"""测试 ui/render.py — 卡片映射占位符、HTML 渲染。"""

from __future__ import annotations

from circuitwise.schema import AnalysisResult
from circuitwise.ui.render import PLACEHOLDER, build_cards, render_footer, render_page
from circuitwise.ui.state import ToolState


class TestBuildCards:
    """结果 → 卡片视图模型。"""

    def test_sample(self, sample_result_data):
        view = build_cards(AnalysisResult.from_model_output(sample_result_data))
        assert [(c.type, c.count) for c in view.components] == [("AND Gate", "2"), ("LED", "1")]
        assert view.ics[0].label == "U1"
        assert view.ics[0].type == "7408"
        assert view.connections[2].source == "U1 pin 3"
        assert view.connections[2].target == "LED1"
        assert (view.wires.circuit, view.wires.power, view.wires.overall) == ("3", "2", "5")
        assert view.wires.consistent is True
        assert view.assumptions == ["Inputs A and B are driven by switches."]

    def test_empty_dict(self):
        view = build_cards({})
        assert view.components == []
        assert view.ics == []
        assert view.connections == []
        assert view.wires.overall == PLACEHOLDER
        assert view.assumptions == []

    def test_nulls_get_placeholders(self):
        view = build_cards(
            {
                "component_summary": [{"type": None, "count": None}, "Resistor", 7],
                "ic_assignment": {"U1": None, "U2": {"pins": "not-a-list"}},
                "pin_connections": [{"from": "A"}, "junk"],
                "wire_count": {"total_circuit_connections": 4},
                "assumptions": None,
            }
        )
        assert [(c.type, c.count) for c in view.components] == [
            ("Unknown", "x"),
            ("Resistor", "x"),
            ("Unknown", "x"),
        ]
        assert [(i.label, i.type, i.pins) for i in view.ics] == [
            ("U1", PLACEHOLDER, []),
            ("U2", PLACEHOLDER, []),
        ]
        assert len(view.connections) == 1
        assert view.connections[0].target == PLACEHOLDER
        assert view.wires.power == PLACEHOLDER
        assert view.assumptions == []

    def test_inconsistent_totals_flagged(self):
        view = build_cards(
            {
                "wire_count": {
                    "total_circuit_connections": 10,
                    "total_power_connections": 4,
                    "overall_total": 16,
                }
            }
        )
        assert view.wires.overall == "16"
        assert view.wires.consistent is False


class TestRenderPage:
    """HTML 页面。"""

    def test_idle_page(self):
        html = render_page(ToolState())
        assert "Welcome to CircuitWise" in html
        assert "Upload Your Circuit Diagram" in html
        assert "Drag &amp; Drop your image here" in html
        assert 'id="analyzeButton" disabled' in html
        assert "Analyze Circuit" in html
        assert 'id="result"' not in html

    def test_selected_page_has_preview(self, png_upload):
        state = ToolState()
        state.select_image(png_upload)
        html = render_page(state)
        assert 'src="data:image/png;base64,' in html
        assert 'id="analyzeButton">' in html
        assert "circuit.png" in html

    def test_analyzing_label(self, png_upload):
        state = ToolState()
        state.select_image(png_upload)
        state.begin_analysis()
        html = render_page(state)
        assert "Analyzing..." in html
        assert 'id="analyzeButton" disabled' in html

    def test_result_cards(self, png_upload, sample_result_data):
        state = ToolState()
        state.select_image(png_upload)
        state.complete(state.begin_analysis(), AnalysisResult.from_model_output(sample_result_data))
        html = render_page(state)
        for heading in ("Components", "IC Assignments", "Pin Connections", "Wire Count", "Assumptions"):
            assert f"<h3>{heading}</h3>" in html
        assert "7408" in html
        assert "Overall total differs" not in html

    def test_error_text(self):
        state = ToolState()
        state.reject_input("No image uploaded")
        html = render_page(state)
        assert '<p class="error" role="alert">No image uploaded</p>' in html

    def test_model_text_escaped(self, png_upload):
        state = ToolState()
        state.select_image(png_upload)
        state.complete(
            state.begin_analysis(),
            AnalysisResult.from_model_output({"assumptions": ["<script>alert(1)</script>"]}),
        )
        html = render_page(state)
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_footer_year(self):
        assert "2031 CircuitWise" in render_footer(2031)
