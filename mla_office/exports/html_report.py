# mla_office/exports/html_report.py

"""
Self-contained HTML report for voter exports (the "pdf" format).

The document carries its own stylesheet so it can be opened or printed
without any other asset.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from jinja2 import Environment, PackageLoader, select_autoescape

from mla_office.exports.columns import MOBILE_NUMBER, ExportColumn, FlatRow

_environment = Environment(
    loader=PackageLoader("mla_office.exports", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def _format_filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_format_filter_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def describe_filters(filters: Optional[Dict]) -> str:
    """Human-readable 'key: value' list of the filters that carry a value."""
    parts = [
        f"{key}: {_format_filter_value(value)}"
        for key, value in (filters or {}).items()
        if value is not None and value != ""
    ]
    return ", ".join(parts) if parts else "All Records"


def _render_cell(column: ExportColumn, row: FlatRow) -> Dict[str, str]:
    value = column.accessor(row)

    if column.key == "epicNumber":
        return {"kind": "code", "text": value or "-"}
    if column.key == "fullName":
        return {"kind": "strong", "text": value or "-"}
    if column.key == "gender":
        return {"kind": "badge", "css": f"badge badge-{value.lower()}", "text": value or "-"}
    if column.key == "isVoted2024":
        voted = bool(row.get("isVoted2024"))
        return {
            "kind": "badge",
            "css": "badge badge-voted" if voted else "badge badge-not-voted",
            "text": "Yes" if voted else "No",
        }
    return {"kind": "text", "text": value or "-"}


def build_summary(rows: Sequence[FlatRow]) -> List[Dict[str, str]]:
    """Summary cards: total rows, male, female and rows with a phone."""
    counts = [
        ("Total Records", len(rows)),
        ("Male", sum(1 for row in rows if row.get("gender") == "M")),
        ("Female", sum(1 for row in rows if row.get("gender") == "F")),
        ("With Phone", sum(1 for row in rows if row.get(MOBILE_NUMBER))),
    ]
    return [{"label": label, "value": f"{count:,}"} for label, count in counts]


def render_html_report(
    rows: Sequence[FlatRow],
    columns: Sequence[ExportColumn],
    filters: Optional[Dict],
    generated_at: datetime,
) -> str:
    template = _environment.get_template("voter_report.html")
    return template.render(
        title="Voter Export Report",
        generated_on=generated_at.strftime("%b %d, %Y, %I:%M:%S %p"),
        filter_description=describe_filters(filters),
        summary=build_summary(rows),
        headers=[column.header for column in columns],
        table_rows=[[_render_cell(column, row) for column in columns] for row in rows],
    )
