"""
SQLAlchemy ORM models for the Lead Engine.

The engine persists through a tabular store: each logical table (Leads,
Discovery_Sessions, Clients, Projects) is a sheet of key-value rows. A row
is stored as one JSON document, ordered by its position in the sheet.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class SheetRow(Base):
    __tablename__ = "sheet_rows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sheet = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    written_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_sheet_rows_sheet_position", "sheet", "position"),
    )
