# mla_office/exports/expansion.py

"""
Row expansion: one voter with N mobile numbers becomes N export rows.

Expansion only happens when a mobile column is part of the export; otherwise
every voter yields a single row with blank mobile fields.
"""

from typing import Iterable, List, Mapping, Optional, Sequence

from mla_office.exports.columns import (
    MOBILE_COLUMN_KEYS,
    MOBILE_NUMBER,
    MOBILE_SORT_ORDER,
    FlatRow,
)
from mla_office.voters.repository import MobileNumberEntry

RECORD_KEY = "epicNumber"


def should_expand(selected_keys: Optional[Iterable[str]]) -> bool:
    """True when no columns were selected or a mobile column was."""
    selected = set(selected_keys or ())
    return not selected or bool(selected & MOBILE_COLUMN_KEYS)


def _blank_row(record: Mapping) -> FlatRow:
    row = dict(record)
    row[MOBILE_NUMBER] = ""
    row[MOBILE_SORT_ORDER] = None
    return row


def expand_rows(
    records: Sequence[Mapping],
    related: Mapping[str, Sequence[MobileNumberEntry]],
    selected_keys: Optional[Iterable[str]],
) -> List[FlatRow]:
    """
    Flatten voter records and their mobile numbers into export rows.

    Records keep their input order; a voter's rows follow the order of its
    mobile number list.
    """
    if not should_expand(selected_keys):
        return [_blank_row(record) for record in records]

    rows: List[FlatRow] = []
    for record in records:
        entries = related.get(record[RECORD_KEY]) or ()
        if not entries:
            rows.append(_blank_row(record))
            continue
        for entry in entries:
            row = dict(record)
            row[MOBILE_NUMBER] = entry.mobile_number
            row[MOBILE_SORT_ORDER] = entry.sort_order
            rows.append(row)
    return rows
