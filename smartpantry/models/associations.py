"""
Association tables for many-to-many relationships.
Kept separate to avoid circular imports between models.
"""
from sqlalchemy import Column, Integer, Table, ForeignKey, String, DateTime, func
from smartpantry.models.base import Base

# The composite primary key is what gives membership its set semantics:
# a uid can appear at most once per household.
household_members = Table(
    'household_members',
    Base.metadata,
    Column('household_id', Integer, ForeignKey('households.id', ondelete='CASCADE'), primary_key=True),
    Column('uid', String(128), primary_key=True, index=True),
    Column('role', String(20), nullable=False, server_default='member'),  # 'owner' or 'member'
    Column('joined_at', DateTime(timezone=True), server_default=func.now(), nullable=False)
)


class HouseholdMember(Base):
    """Read-side mapping of a ``household_members`` row."""

    __table__ = household_members
