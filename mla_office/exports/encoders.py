# mla_office/exports/encoders.py

"""
Export Encoders

Turn expanded rows into file payloads. Every encoder receives the same rows
and resolved columns and is free of I/O.
"""

import csv
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Dict, Optional, Sequence

from mla_office.exports.columns import ExportColumn, FlatRow
from mla_office.exports.html_report import render_html_report
from mla_office.exports.models import ExportFormat

UTF8_BOM = "\ufeff"


@dataclass(frozen=True)
class EncodedArtifact:
    content: bytes
    content_type: str
    extension: str


def encode_csv(rows: Sequence[FlatRow], columns: Sequence[ExportColumn]) -> str:
    """
    Encode rows as CSV text.

    The header line is the plain comma-joined headers. Every data field is
    quoted with embedded quotes doubled; lines are separated by a single LF
    and there is no trailing newline.
    """
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([column.accessor(row) for column in columns])

    header = ",".join(column.header for column in columns)
    body = buffer.getvalue()
    if body.endswith("\n"):
        body = body[:-1]
    return f"{header}\n{body}" if body else header


def encode_export(
    export_format: ExportFormat,
    rows: Sequence[FlatRow],
    columns: Sequence[ExportColumn],
    filters: Optional[Dict] = None,
    generated_at: Optional[datetime] = None,
) -> EncodedArtifact:
    """
    Route rows to the encoder for the requested format.

    Formats are validated by `ExportRequest`, so anything that is not a
    delimited format is the HTML report.
    """
    if export_format == ExportFormat.CSV:
        return EncodedArtifact(
            content=encode_csv(rows, columns).encode("utf-8"),
            content_type="text/csv",
            extension="csv",
        )
    elif export_format == ExportFormat.EXCEL:
        # BOM makes Excel open the file as UTF-8
        return EncodedArtifact(
            content=(UTF8_BOM + encode_csv(rows, columns)).encode("utf-8"),
            content_type="text/csv; charset=utf-8",
            extension="csv",
        )
    # ExportFormat.PDF: printable HTML report
    html = render_html_report(rows, columns, filters, generated_at or datetime.now())
    return EncodedArtifact(
        content=html.encode("utf-8"),
        content_type="text/html",
        extension="html",
    )
