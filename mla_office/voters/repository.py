# mla_office/voters/repository.py

"""
Voter Export Data Access

Replicates the voter search filters for exports: counts and fetches the
matching voters and bulk-loads their mobile numbers.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from mla_office.voters.models import PartNumber, Voter, VoterMobileNumber
from mla_office.utils.logger import get_logger

logger = get_logger(__name__)

MOBILE_LOOKUP_BATCH_SIZE = 1000


@dataclass(frozen=True)
class MobileNumberEntry:
    """One phone number of a voter, as seen by the export pipeline"""
    mobile_number: str
    sort_order: Optional[int]


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def _has_value(column):
    return and_(column.is_not(None), column != "")


def _lacks_value(column):
    return or_(column.is_(None), column == "")


def build_voter_export_conditions(filters: Optional[Dict]) -> list:
    """
    Translate an export filter descriptor into SQL conditions.

    Supported keys: partNo, wardNo, acNo, gender, minAge, maxAge, hasPhone.
    Anything else (selectedColumns included) is ignored here.
    """
    filters = filters or {}
    conditions = []

    if filters.get("partNo"):
        conditions.append(Voter.part_no == filters["partNo"])
    if filters.get("wardNo"):
        conditions.append(PartNumber.ward_no == filters["wardNo"])
    if filters.get("acNo"):
        conditions.append(Voter.ac_no == filters["acNo"])
    if filters.get("gender"):
        conditions.append(Voter.gender == filters["gender"])

    min_age = _as_int(filters.get("minAge"))
    if min_age is not None:
        conditions.append(Voter.age >= min_age)

    max_age = _as_int(filters.get("maxAge"))
    if max_age is not None:
        conditions.append(Voter.age <= max_age)

    has_phone = _as_bool(filters.get("hasPhone"))
    if has_phone is True:
        conditions.append(
            or_(_has_value(Voter.mobile_no_primary), _has_value(Voter.mobile_no_secondary))
        )
    elif has_phone is False:
        conditions.append(
            and_(_lacks_value(Voter.mobile_no_primary), _lacks_value(Voter.mobile_no_secondary))
        )

    return conditions


def transform_voter_row(voter: Voter, ward_no: Optional[str], booth_name: Optional[str]) -> Dict:
    """Transform a voter ORM object (plus its part details) to an export record."""
    return {
        "epicNumber": voter.epic_number,
        "fullName": voter.full_name,
        "relationType": voter.relation_type,
        "relationName": voter.relation_name,
        "age": voter.age,
        "gender": voter.gender,
        "houseNumber": voter.house_number,
        "address": voter.address,
        "pincode": voter.pincode,
        "acNo": voter.ac_no,
        "wardNo": ward_no,
        "partNo": voter.part_no,
        "boothName": booth_name,
        "religion": voter.religion,
        "isVoted2024": bool(voter.is_voted_2024),
    }


class VoterExportRepository:
    """
    Data Access Layer for voter exports.
    Read-only: nothing here writes to the voter tables.
    """

    def __init__(self, db: Session):
        self.db = db

    def count_for_export(self, filters: Optional[Dict]) -> int:
        """Total number of voters matching the filters."""
        stmt = (
            select(func.count())
            .select_from(Voter)
            .outerjoin(PartNumber, Voter.part_no == PartNumber.part_no)
            .where(*build_voter_export_conditions(filters))
        )
        return int(self.db.execute(stmt).scalar_one() or 0)

    def get_for_export(self, filters: Optional[Dict]) -> List[Dict]:
        """
        Fetch every matching voter, ordered by full name.

        The whole result set is materialized; callers hold it for one export run.
        """
        logger.info("Fetching voters for export", filter_count=len(filters or {}))

        stmt = (
            select(Voter, PartNumber.ward_no, PartNumber.booth_name)
            .outerjoin(PartNumber, Voter.part_no == PartNumber.part_no)
            .where(*build_voter_export_conditions(filters))
            .order_by(Voter.full_name.asc(), Voter.epic_number.asc())
        )
        return [
            transform_voter_row(voter, ward_no, booth_name)
            for voter, ward_no, booth_name in self.db.execute(stmt).all()
        ]

    def get_mobile_numbers_by_epic_numbers(
        self, epic_numbers: Iterable[str]
    ) -> Dict[str, List[MobileNumberEntry]]:
        """
        Bulk lookup of mobile numbers keyed by EPIC number.

        Each list is ordered by sort_order ascending. Voters without numbers
        are simply absent from the result.
        """
        keys = list(dict.fromkeys(epic_numbers))
        result: Dict[str, List[MobileNumberEntry]] = {}

        for start in range(0, len(keys), MOBILE_LOOKUP_BATCH_SIZE):
            batch = keys[start:start + MOBILE_LOOKUP_BATCH_SIZE]
            stmt = (
                select(
                    VoterMobileNumber.epic_number,
                    VoterMobileNumber.mobile_number,
                    VoterMobileNumber.sort_order,
                )
                .where(VoterMobileNumber.epic_number.in_(batch))
                .order_by(
                    VoterMobileNumber.epic_number,
                    VoterMobileNumber.sort_order.asc(),
                    VoterMobileNumber.id.asc(),
                )
            )
            for epic_number, mobile_number, sort_order in self.db.execute(stmt).all():
                result.setdefault(epic_number, []).append(
                    MobileNumberEntry(mobile_number=mobile_number, sort_order=sort_order)
                )

        logger.debug(
            "Loaded mobile numbers", voters=len(keys), voters_with_numbers=len(result)
        )
        return result
