"""
Address and parcel dimension models.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from sendit.app.db.session import Base
from sendit.app.models.parcel_enums import DimensionUnit


class Address(Base):
    """
    Pickup or drop-off address.

    Coordinates are optional; distance-based calculations treat a missing
    coordinate as zero distance.
    """
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    street = Column(String(255), nullable=False)
    area = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False, index=True)
    county = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=False, default="Kenya")

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Address(id={self.id}, city='{self.city}')>"


class Dimensions(Base):
    """Package dimensions (optional on a parcel)."""
    __tablename__ = "dimensions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    length = Column(Float, nullable=False)
    width = Column(Float, nullable=False)
    height = Column(Float, nullable=False)
    unit = Column(Enum(DimensionUnit), default=DimensionUnit.cm, nullable=False)

    def __repr__(self):
        return f"<Dimensions({self.length}x{self.width}x{self.height} {self.unit.value})>"
