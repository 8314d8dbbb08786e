"""
Document -> visual tree renderer, and visual tree -> printable HTML.

``render`` is a pure projection: the same document always yields the same
tree and nothing else is read or written. Chart sections carry a Chart.js
config; the HTML export embeds it as ``<script type="application/json">``
and hydrates it in the browser, so no chart library runs server-side.
"""
from __future__ import annotations

import dataclasses
import html
import json
from typing import Any, Callable, Dict, List, Optional

from app.models.schemas import ChartType, Document, Section
from app.utils.helpers import format_number

# Fixed slice palette for pie charts, cycled by index
PIE_COLORS = ["#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884d8", "#82ca9d"]

DEFAULT_FOOTER = "Generated by Infographic Studio"


@dataclasses.dataclass(frozen=True)
class VisualNode:
    kind: str
    props: Dict[str, Any] = dataclasses.field(default_factory=dict)
    children: List["VisualNode"] = dataclasses.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def find(self, kind: str) -> List["VisualNode"]:
        """All descendants (and self) of the given kind, depth first."""
        found = [self] if self.kind == kind else []
        for child in self.children:
            found.extend(child.find(kind))
        return found


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def layout_span(chart_type: ChartType, data_length: int) -> str:
    """``"full"`` when the section takes a whole grid row, else ``"half"``."""
    if chart_type == ChartType.LINE:
        return "full"
    if chart_type == ChartType.BAR and data_length > 6:
        return "full"
    if chart_type == ChartType.STAT and data_length > 3:
        return "full"
    return "half"


# ---------------------------------------------------------------------------
# Per-type content
# ---------------------------------------------------------------------------

def _chart_node(section: Section, chart_kind: str, colors: Any, fill: bool) -> VisualNode:
    dataset: Dict[str, Any] = {
        "label": section.title,
        "data": [p.value for p in section.data],
        "backgroundColor": colors,
    }
    if chart_kind == "line":
        dataset.update({"borderColor": colors, "borderWidth": 3, "fill": fill, "tension": 0.4})
    config = {
        "type": chart_kind,
        "data": {"labels": [p.name for p in section.data], "datasets": [dataset]},
        "options": {
            "responsive": True,
            "maintainAspectRatio": False,
            "plugins": {"legend": {"display": chart_kind == "doughnut"}},
        },
    }
    return VisualNode("chart", {"chartType": section.type.value, "config": config})


def _render_bar(section: Section, theme_color: str) -> List[VisualNode]:
    return [_chart_node(section, "bar", theme_color, fill=True)]


def _render_line(section: Section, theme_color: str) -> List[VisualNode]:
    return [_chart_node(section, "line", theme_color, fill=False)]


def _render_pie(section: Section, theme_color: str) -> List[VisualNode]:
    colors = [PIE_COLORS[i % len(PIE_COLORS)] for i in range(len(section.data))]
    return [_chart_node(section, "doughnut", colors, fill=True)]


def _render_stat(section: Section, theme_color: str) -> List[VisualNode]:
    return [
        VisualNode(
            "stat-card",
            {"value": format_number(p.value), "name": p.name, "label": p.label},
        )
        for p in section.data
    ]


def _render_list(section: Section, theme_color: str) -> List[VisualNode]:
    return [
        VisualNode(
            "list-item",
            {
                "ordinal": i + 1,
                "name": p.name,
                "text": p.label if p.label else format_number(p.value),
            },
        )
        for i, p in enumerate(section.data)
    ]


_SECTION_RENDERERS: Dict[ChartType, Callable[[Section, str], List[VisualNode]]] = {
    ChartType.BAR: _render_bar,
    ChartType.PIE: _render_pie,
    ChartType.LINE: _render_line,
    ChartType.STAT: _render_stat,
    ChartType.LIST: _render_list,
}


def render_section(section: Section, theme_color: str) -> VisualNode:
    """Project one section; empty data renders a section without content."""
    content = _SECTION_RENDERERS[section.type](section, theme_color) if section.data else []
    return VisualNode(
        "section",
        {
            "id": section.id,
            "type": section.type.value,
            "title": section.title,
            "description": section.description,
            "chartDescription": section.chart_description,
            "span": layout_span(section.type, len(section.data)),
        },
        content,
    )


def render(doc: Document) -> VisualNode:
    """Project a document onto its visual tree."""
    children: List[VisualNode] = [
        VisualNode("header", {"title": doc.title, "subtitle": doc.subtitle}),
        VisualNode(
            "grid",
            {"columns": 2},
            [render_section(section, doc.theme_color) for section in doc.sections],
        ),
    ]
    if doc.sources:
        children.append(
            VisualNode(
                "sources",
                {},
                [VisualNode("source", {"title": s.title, "uri": s.uri}) for s in doc.sources],
            )
        )
    children.append(VisualNode("footer", {"text": doc.footer or DEFAULT_FOOTER}))

    return VisualNode(
        "canvas",
        {"themeColor": doc.theme_color, "backgroundColor": doc.background_color},
        children,
    )


# ---------------------------------------------------------------------------
# HTML export
# ---------------------------------------------------------------------------

_PAGE_CSS = """
body { margin: 0; font-family: system-ui, -apple-system, "Segoe UI", sans-serif; }
.canvas { max-width: 1024px; margin: 0 auto; min-height: 800px; }
.header { padding: 48px; text-align: center; border-top: 8px solid var(--theme); }
.header h1 { font-size: 3rem; margin: 0 0 16px; color: #0f172a; }
.header p { font-size: 1.25rem; color: #475569; margin: 0; }
.grid { display: grid; grid-template-columns: 1fr 1fr; gap: 32px; padding: 32px 48px; }
.section { break-inside: avoid; }
.section.full { grid-column: span 2; }
.section h3 { font-size: 1.5rem; margin: 0 0 8px; border-left: 4px solid var(--theme); padding-left: 12px; }
.section .description { color: #64748b; font-size: .875rem; margin: 0 0 4px; }
.section .chart-description { color: #64748b; font-size: .875rem; font-style: italic; }
.section .body { background: #f8fafc; border-radius: 16px; padding: 24px; }
.chart { position: relative; height: 256px; }
.stats { display: grid; grid-template-columns: repeat(3, 1fr); gap: 16px; }
.stat-card { background: #fff; border-radius: 12px; padding: 24px; text-align: center; }
.stat-card .value { font-size: 2.25rem; font-weight: 700; color: var(--theme); }
.stat-card .label { color: #94a3b8; font-size: .875rem; }
.list-item { display: flex; gap: 16px; padding: 16px; border-left: 4px solid var(--theme); margin-bottom: 12px; }
.list-item .ordinal { background: var(--theme); color: #fff; border-radius: 50%; width: 32px; height: 32px;
  display: flex; align-items: center; justify-content: center; flex-shrink: 0; }
.sources { padding: 0 48px 16px; font-size: .75rem; color: #94a3b8; }
.sources a { margin-right: 12px; color: inherit; }
.footer { padding: 32px; background: #0f172a; color: #94a3b8; text-align: center; font-size: .875rem; }
@media print { .canvas { box-shadow: none; } }
"""

_HYDRATION_SCRIPT = """
document.querySelectorAll('script[data-chart-config]').forEach(function (node) {
  var canvas = document.getElementById(node.getAttribute('data-chart-config'));
  if (canvas && window.Chart) { new Chart(canvas, JSON.parse(node.textContent)); }
});
"""


def _esc(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def _json_script(payload: Any) -> str:
    # "</" would terminate the script element early
    return json.dumps(payload, ensure_ascii=False).replace("</", "<\\/")


def _section_html(node: VisualNode) -> str:
    props = node.props
    span = "full" if props.get("span") == "full" else "half"
    parts = [f'<section class="section {span}" data-section-id="{_esc(props["id"])}">']
    parts.append(f"<h3>{_esc(props['title'])}</h3>")
    if props.get("description"):
        parts.append(f'<p class="description">{_esc(props["description"])}</p>')
    if props.get("chartDescription"):
        parts.append(f'<p class="chart-description">{_esc(props["chartDescription"])}</p>')

    body: List[str] = []
    stats = [c for c in node.children if c.kind == "stat-card"]
    items = [c for c in node.children if c.kind == "list-item"]
    for child in node.children:
        if child.kind == "chart":
            canvas_id = f"chart-{_esc(props['id'])}"
            body.append(
                f'<div class="chart"><canvas id="{canvas_id}"></canvas></div>'
                f'<script type="application/json" data-chart-config="{canvas_id}">'
                f"{_json_script(child.props['config'])}</script>"
            )
    if stats:
        cards = "".join(
            '<div class="stat-card">'
            f'<div class="value">{_esc(c.props["value"])}</div>'
            f'<div class="name">{_esc(c.props["name"])}</div>'
            + (f'<div class="label">{_esc(c.props["label"])}</div>' if c.props.get("label") else "")
            + "</div>"
            for c in stats
        )
        body.append(f'<div class="stats">{cards}</div>')
    for item in items:
        body.append(
            '<div class="list-item">'
            f'<div class="ordinal">{item.props["ordinal"]}</div>'
            f'<div><h4>{_esc(item.props["name"])}</h4><p>{_esc(item.props["text"])}</p></div>'
            "</div>"
        )

    parts.append(f'<div class="body">{"".join(body)}</div></section>')
    return "".join(parts)


def to_html(tree: VisualNode, chartjs_url: str = "https://cdn.jsdelivr.net/npm/chart.js") -> str:
    """Serialize a rendered tree into a standalone, printable HTML page."""
    theme = tree.props.get("themeColor", "#6366f1")
    background = tree.props.get("backgroundColor", "#ffffff")

    title: Optional[str] = None
    body: List[str] = []
    for child in tree.children:
        if child.kind == "header":
            title = child.props["title"]
            body.append(
                '<header class="header">'
                f"<h1>{_esc(child.props['title'])}</h1>"
                f"<p>{_esc(child.props['subtitle'])}</p></header>"
            )
        elif child.kind == "grid":
            sections = "".join(_section_html(s) for s in child.children)
            body.append(f'<main class="grid">{sections}</main>')
        elif child.kind == "sources":
            links = "".join(
                f'<a href="{_esc(s.props["uri"])}" rel="noopener noreferrer">{_esc(s.props["title"])}</a>'
                for s in child.children
            )
            body.append(f'<div class="sources"><strong>Sources:</strong> {links}</div>')
        elif child.kind == "footer":
            body.append(f'<footer class="footer"><p>{_esc(child.props["text"])}</p></footer>')

    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        f"<title>{_esc(title or 'Infographic')}</title>"
        f"<style>:root {{ --theme: {_esc(theme)}; }}{_PAGE_CSS}</style>"
        f'<script src="{_esc(chartjs_url)}"></script>'
        "</head>"
        f'<body><div class="canvas" id="infographic-canvas" style="background-color: {_esc(background)}">'
        f"{''.join(body)}</div>"
        f"<script>{_HYDRATION_SCRIPT}</script>"
        "</body></html>\n"
    )
