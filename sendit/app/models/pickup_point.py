"""
Pickup point model.

Hubs, partner shops and lockers where a parcel can be held for collection
instead of being delivered to the door.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, Boolean, JSON
from sqlalchemy.sql import func
from sendit.app.db.session import Base
from sendit.app.models.parcel_enums import PickupPointType


class PickupPoint(Base):
    __tablename__ = "pickup_points"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(Enum(PickupPointType), nullable=False, index=True)

    # Location
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    county = Column(String(100), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    # Contact and opening hours
    hours = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)

    services = Column(JSON, nullable=False, default=list)
    rating = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PickupPoint(id={self.id}, name='{self.name}', county='{self.county}')>"
