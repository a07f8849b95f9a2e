"""
SQLAlchemy ORM models.

Purpose:
- Define Subscription and Activity tables
- Use SQLAlchemy async-compatible models

Production notes:
- Subscriptions are soft-deleted (is_active=False) so reactivation keeps history
- Preference flags are plain boolean columns so they can be filtered and summed in SQL
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text
from core.db import Base
from datetime import datetime


class Subscription(Base):
    """
    Newsletter subscription of a single email address.

    Columns:
    - email: unique contact identifier (lower-cased)
    - is_active: soft delete flag; only active rows are notified
    - subscribed_at: first subscription or last reactivation
    - last_notified: advisory timestamp of the last fan-out that included this row
    - pg_hostels/mess_cafe/gaming_zone/special_offers: preference opt-in flags
    - created_at/updated_at: audit timestamps
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, index=True, nullable=False)
    subscribed_at = Column(DateTime, default=datetime.utcnow)
    last_notified = Column(DateTime, nullable=True, index=True)
    pg_hostels = Column(Boolean, default=True, nullable=False)
    mess_cafe = Column(Boolean, default=True, nullable=False)
    gaming_zone = Column(Boolean, default=True, nullable=False)
    special_offers = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# preference key -> Subscription column name
PREFERENCE_COLUMNS = {
    "pgHostels": "pg_hostels",
    "messCafe": "mess_cafe",
    "gamingZone": "gaming_zone",
    "specialOffers": "special_offers",
}


class Activity(Base):
    """
    Audit trail entry for admin and system actions.

    user_id is null for system actions (e.g. public subscription flows).
    """
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(100), index=True, nullable=True)
    action = Column(String(20), index=True, nullable=False)
    resource = Column(String(100), index=True, nullable=False)
    resource_id = Column(String(100), nullable=True)
    details = Column(Text, default="")
    ip_address = Column(String(64), default="")
    user_agent = Column(String(500), default="")
    status = Column(String(10), default="SUCCESS")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
