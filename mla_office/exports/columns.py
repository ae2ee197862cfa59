# mla_office/exports/columns.py

"""
Voter export column catalog.

The catalog is built once at import time and never modified. Its order is
the order columns appear in every export, whatever order a caller asks for.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

FlatRow = Dict[str, Any]

MOBILE_NUMBER = "mobileNumber"
MOBILE_SORT_ORDER = "mobileSortOrder"

# Columns backed by the voter's (multi-valued) mobile numbers
MOBILE_COLUMN_KEYS = frozenset({MOBILE_NUMBER, MOBILE_SORT_ORDER})


@dataclass(frozen=True)
class ExportColumn:
    key: str
    header: str
    accessor: Callable[[FlatRow], str]


def _text(key: str) -> Callable[[FlatRow], str]:
    def accessor(row: FlatRow) -> str:
        value = row.get(key)
        return "" if value is None else str(value)
    return accessor


def _yes_no(key: str) -> Callable[[FlatRow], str]:
    def accessor(row: FlatRow) -> str:
        return "Yes" if row.get(key) else "No"
    return accessor


COLUMN_CATALOG: Tuple[ExportColumn, ...] = (
    ExportColumn("epicNumber", "EPIC Number", _text("epicNumber")),
    ExportColumn("fullName", "Full Name", _text("fullName")),
    ExportColumn("relationType", "Relation Type", _text("relationType")),
    ExportColumn("relationName", "Relation Name", _text("relationName")),
    ExportColumn("age", "Age", _text("age")),
    ExportColumn("gender", "Gender", _text("gender")),
    ExportColumn(MOBILE_NUMBER, "Mobile Number", _text(MOBILE_NUMBER)),
    ExportColumn(MOBILE_SORT_ORDER, "Mobile Sort Order", _text(MOBILE_SORT_ORDER)),
    ExportColumn("houseNumber", "House Number", _text("houseNumber")),
    ExportColumn("address", "Address", _text("address")),
    ExportColumn("pincode", "Pincode", _text("pincode")),
    ExportColumn("acNo", "AC No", _text("acNo")),
    ExportColumn("wardNo", "Ward No", _text("wardNo")),
    ExportColumn("partNo", "Part No", _text("partNo")),
    ExportColumn("boothName", "Booth Name", _text("boothName")),
    ExportColumn("religion", "Religion", _text("religion")),
    ExportColumn("isVoted2024", "Voted 2024", _yes_no("isVoted2024")),
)

_COLUMNS_BY_KEY = {column.key: column for column in COLUMN_CATALOG}


def get_column(key: str) -> Optional[ExportColumn]:
    return _COLUMNS_BY_KEY.get(key)


def resolve_columns(requested: Optional[Iterable[str]]) -> Tuple[ExportColumn, ...]:
    """
    Resolve a requested list of column keys against the catalog.

    Unknown keys are dropped and the result follows catalog order. When
    nothing valid is left the full catalog is returned.
    """
    wanted = {key for key in (requested or ()) if key in _COLUMNS_BY_KEY}
    if not wanted:
        return COLUMN_CATALOG
    return tuple(column for column in COLUMN_CATALOG if column.key in wanted)
