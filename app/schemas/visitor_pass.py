# app/schemas/visitor_pass.py
from pydantic import BaseModel, field_validator
from datetime import date, datetime
from typing import Literal, Optional

VehicleType = Literal["car", "motorcycle", "van", "truck", "other"]


class PassCreate(BaseModel):
    visitor_name: str
    visitor_phone: str
    vehicle_plate: str
    vehicle_type: VehicleType = "car"
    scheduled_date: date
    reason: str = ""

    @field_validator("visitor_name", "visitor_phone", "vehicle_plate")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class PassOut(BaseModel):
    id: str
    pass_token: str
    host_id: str
    host_name: str
    visitor_name: str
    visitor_phone: str
    vehicle_plate: str
    vehicle_type: str
    scheduled_date: date
    reason: Optional[str]
    created_at: datetime
    verification_url: Optional[str] = None

    class Config:
        from_attributes = True


class ScanIn(BaseModel):
    payload: str


class VerificationOut(BaseModel):
    state: Literal["valid", "future", "expired", "invalid"]
    headline: str
    message: Optional[str] = None
    host_address: Optional[str] = None
    invitation: Optional[PassOut] = None
