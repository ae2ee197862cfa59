# mla_office/voters/models.py

"""
Voter roll models read by the export pipeline.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mla_office.core.db import Base


class PartNumber(Base):
    """Polling part (booth) a voter is enrolled in"""
    __tablename__ = "part_numbers"

    part_no: Mapped[str] = mapped_column(String(10), primary_key=True)
    ward_no: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    booth_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class Voter(Base):
    """One elector on the roll, keyed by EPIC number"""
    __tablename__ = "voters"

    epic_number: Mapped[str] = mapped_column(String(20), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    relation_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    relation_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ac_no: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, index=True)
    part_no: Mapped[Optional[str]] = mapped_column(
        String(10),
        ForeignKey("part_numbers.part_no", name="fk_voters_part_no"),
        nullable=True,
        index=True,
    )
    house_number: Mapped[Optional[str]] = mapped_column(String(127), nullable=True)
    religion: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    is_voted_2024: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mobile_no_primary: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    mobile_no_secondary: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self):
        return f"<Voter(epic_number={self.epic_number}, full_name={self.full_name})>"


class VoterMobileNumber(Base):
    """A phone number attached to a voter, ordered by sort_order"""
    __tablename__ = "voter_mobile_numbers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    epic_number: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("voters.epic_number", name="fk_voter_mobile_numbers_epic_number"),
        nullable=False,
        index=True,
    )
    mobile_number: Mapped[str] = mapped_column(String(15), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
