"""
Key/value record backing the SQL blob store.

One row per persisted record (`reservations`, `seatStatuses`); the value is
the JSON document exactly as the other backends store it.
"""

from sqlalchemy import Column, String, Text

from seating.db.base import Base, TimestampMixin


class KVRecord(Base, TimestampMixin):
    __tablename__ = "kv_records"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<KVRecord(key={self.key}, size={len(self.value or '')})>"
