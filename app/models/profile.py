# app/models/profile.py
"""
Resident profiles: the host identity behind X-Host-Id and the source of
the host address shown on shareable passes and verification results.
"""

import uuid
from sqlalchemy import Column, String, DateTime, Text
from app.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = Column(String(200), nullable=False)
    address = Column(Text)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<Profile {self.id} name={self.full_name}>"
