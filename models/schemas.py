from pydantic import BaseModel, Field
from typing import Optional, Dict, Any

class EmailRequest(BaseModel):
    email: Optional[str] = None

class PreferencesUpdate(BaseModel):
    email: Optional[str] = None
    preferences: Dict[str, bool] = Field(default_factory=dict)

class PropertyDetails(BaseModel):
    title: str = ""
    price: Optional[Any] = None
    location: str = ""

    class Config:
        extra = "allow"

class NewListingNotification(BaseModel):
    property_type: str = Field(..., min_length=1)
    property_details: PropertyDetails = Field(default_factory=PropertyDetails)

class OfferDetails(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""

    class Config:
        extra = "allow"
