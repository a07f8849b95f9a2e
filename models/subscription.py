# models/subscription.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class Preferences(BaseModel):
    pgHostels: bool = True
    messCafe: bool = True
    gamingZone: bool = True
    specialOffers: bool = True

class Subscription(BaseModel):
    id: Optional[int] = None
    email: str
    is_active: bool = True
    subscribed_at: Optional[datetime] = None
    last_notified: Optional[datetime] = None
    preferences: Preferences = Field(default_factory=Preferences)

    def wants(self, preference_key: str) -> bool:
        """True if this subscription is eligible for the given category."""
        return self.is_active and bool(getattr(self.preferences, preference_key, False))
