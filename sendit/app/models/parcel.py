"""
Parcel database model.

The parcel is the aggregate root: tracking history, delivery attempts and
courier assignments all hang off it.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, Boolean, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sendit.app.db.session import Base
from sendit.app.models.parcel_enums import (
    ParcelStatus, PackageType, DeliveryType, InsuranceCoverage, WeightUnit, CourierAssignmentStatus
)
# Related models must be registered before the mapper is configured
from sendit.app.models.user import User  # noqa: F401
from sendit.app.models.address import Address, Dimensions  # noqa: F401
from sendit.app.models.tracking_history import TrackingHistory
from sendit.app.models.delivery_attempt import DeliveryAttempt
from sendit.app.models.courier_assignment import CourierAssignment


class Parcel(Base):
    """
    Parcel model.

    Only the status workflow changes `status`, `actual_delivery` and
    `updated_by` after creation. `version` is bumped on every UPDATE and
    checked in the WHERE clause, so two requests racing on the same parcel
    cannot both commit a transition from the same starting status.
    Parcels are soft-deleted via `deleted_at`.
    """
    __tablename__ = "parcels"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_number = Column(String(20), unique=True, nullable=False, index=True)

    # Parties
    sender_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    sender_address_id = Column(Integer, ForeignKey('addresses.id'), nullable=False)
    recipient_address_id = Column(Integer, ForeignKey('addresses.id'), nullable=False)
    dimensions_id = Column(Integer, ForeignKey('dimensions.id'), nullable=True)

    # Package
    status = Column(Enum(ParcelStatus), default=ParcelStatus.PROCESSING, nullable=False, index=True)
    package_type = Column(Enum(PackageType), nullable=False)
    delivery_type = Column(Enum(DeliveryType), default=DeliveryType.STANDARD, nullable=False)
    weight = Column(Float, nullable=False)
    weight_unit = Column(Enum(WeightUnit), default=WeightUnit.kg, nullable=False)
    description = Column(Text, nullable=True)
    estimated_value = Column(Float, nullable=True)
    insurance_coverage = Column(Enum(InsuranceCoverage), default=InsuranceCoverage.NO_INSURANCE, nullable=False)

    # Special handling
    fragile = Column(Boolean, default=False, nullable=False)
    perishable = Column(Boolean, default=False, nullable=False)
    hazardous_material = Column(Boolean, default=False, nullable=False)
    high_value = Column(Boolean, default=False, nullable=False)
    signature_required = Column(Boolean, default=False, nullable=False)
    hold_at_pickup_point = Column(Boolean, default=False, nullable=False)
    pickup_instructions = Column(Text, nullable=True)
    delivery_instructions = Column(Text, nullable=True)

    # Pricing snapshot at creation time
    base_price = Column(Float, nullable=False)
    additional_fees = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="KES")

    # Delivery timing
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    actual_delivery = Column(DateTime(timezone=True), nullable=True)

    # Audit
    created_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    updated_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    version = Column(Integer, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    sender = relationship("User", foreign_keys=[sender_id], lazy="selectin")
    recipient = relationship("User", foreign_keys=[recipient_id], lazy="selectin")
    sender_address = relationship("Address", foreign_keys=[sender_address_id], lazy="selectin")
    recipient_address = relationship("Address", foreign_keys=[recipient_address_id], lazy="selectin")
    dimensions = relationship("Dimensions", lazy="selectin")

    tracking_history = relationship(
        TrackingHistory,
        lazy="selectin",
        order_by=(TrackingHistory.timestamp.desc(), TrackingHistory.id.desc()),
        viewonly=True,
    )
    delivery_attempts = relationship(
        DeliveryAttempt,
        lazy="selectin",
        order_by=(DeliveryAttempt.attempt_date.desc(), DeliveryAttempt.id.desc()),
        viewonly=True,
    )
    assignments = relationship(
        CourierAssignment,
        back_populates="parcel",
        lazy="selectin",
        order_by=CourierAssignment.assigned_at.desc(),
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def active_assignment(self):
        for assignment in self.assignments:
            if assignment.status == CourierAssignmentStatus.ACTIVE:
                return assignment
        return None

    def __repr__(self):
        return f"<Parcel(id={self.id}, tracking='{self.tracking_number}', status='{self.status.value}')>"
