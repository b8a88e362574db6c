# app/models/visitor_pass.py
"""
Visitor passes table: one row per invitation issued by a resident.
Rows are never updated; revoking a pass deletes the row.
pass_token is the value printed into the QR code and the verification URL.
"""

import uuid
from sqlalchemy import Column, String, Date, DateTime, Text
from app.database import Base

VEHICLE_TYPES = ("car", "motorcycle", "van", "truck", "other")


class VisitorPass(Base):
    __tablename__ = "visitor_passes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    pass_token = Column(String(64), unique=True, nullable=False, index=True)
    host_id = Column(String(36), nullable=False, index=True)   # FK to profiles.id
    host_name = Column(String(200), nullable=False)
    visitor_name = Column(String(200), nullable=False)
    visitor_phone = Column(String(50), nullable=False)
    vehicle_plate = Column(String(50), nullable=False)
    vehicle_type = Column(String(20), nullable=False)          # car | motorcycle | van | truck | other
    scheduled_date = Column(Date, nullable=False, index=True)
    reason = Column(Text)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<VisitorPass {self.id} visitor={self.visitor_name} date={self.scheduled_date}>"
