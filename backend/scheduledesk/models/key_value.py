"""Key-value ORM models backing the SQL store.

Three tables mirror the three Redis value shapes the application uses:
plain strings, ordered lists, and unordered sets.
"""
from sqlalchemy import Column, String, Text, Integer, Index
from scheduledesk.database import Base


class KVEntry(Base):
    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False, default="")


class KVListItem(Base):
    __tablename__ = "kv_list_items"

    # Autoincrement id gives list order (append == RPUSH)
    item_id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), nullable=False)
    value = Column(Text, nullable=False)

    __table_args__ = (Index("ix_kv_list_items_key", "key"),)


class KVSetMember(Base):
    __tablename__ = "kv_set_members"

    key = Column(String(255), primary_key=True)
    member = Column(String(255), primary_key=True)
