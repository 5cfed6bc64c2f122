"""
Parcel Store.

Repository for the parcel aggregate. Owns the SQL for loading parcels,
translating a `ParcelQuery` into WHERE clauses, and writing a status
transition atomically.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.orm.exc import StaleDataError

from sendit.app.core.exceptions import ConcurrentUpdateError
from sendit.app.domain.parcels.query_spec import (
    DateRangeFilter, ParcelQuery, SearchFilter, StatusFilter
)
from sendit.app.domain.workflow.attempt_classifier import (
    classify_attempt, next_attempt_at, records_attempt
)
from sendit.app.models.address import Address
from sendit.app.models.courier_assignment import CourierAssignment
from sendit.app.models.delivery_attempt import DeliveryAttempt
from sendit.app.models.parcel import Parcel
from sendit.app.models.parcel_enums import CourierAssignmentStatus, ParcelStatus
from sendit.app.models.tracking_history import TrackingHistory
from sendit.app.models.user import User

logger = logging.getLogger(__name__)


class StatusChange(BaseModel):
    """One requested status transition and its context."""
    new_status: ParcelStatus
    actor_id: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    courier_notes: Optional[str] = None
    # Set when a courier drives the change: only their assignment is completed
    courier_id: Optional[int] = None
    photo_url: Optional[str] = None


def default_description(status: ParcelStatus) -> str:
    return f"Status updated to {status.value}"


class ParcelStore:

    @staticmethod
    def active_parcels() -> Select:
        return select(Parcel).where(Parcel.deleted_at.is_(None))

    @staticmethod
    async def get_parcel(db: AsyncSession, parcel_id: int, refresh: bool = False) -> Optional[Parcel]:
        """
        Load a non-deleted parcel with its relationships.

        `refresh=True` re-reads rows already in the session, used after a
        write so collections such as tracking_history reflect the commit.
        """
        query = ParcelStore.active_parcels().where(Parcel.id == parcel_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_tracking_number(db: AsyncSession, tracking_number: str) -> Optional[Parcel]:
        result = await db.execute(
            ParcelStore.active_parcels().where(Parcel.tracking_number == tracking_number.upper())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def current_version(db: AsyncSession, tracking_number: str) -> Optional[int]:
        """Version of a non-deleted parcel, or None."""
        result = await db.execute(
            select(Parcel.version).where(
                Parcel.tracking_number == tracking_number.upper(),
                Parcel.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def tracking_number_exists(db: AsyncSession, tracking_number: str) -> bool:
        # Deleted parcels still own their tracking number
        result = await db.execute(
            select(Parcel.id).where(Parcel.tracking_number == tracking_number)
        )
        return result.first() is not None

    @staticmethod
    def apply_filters(query: Select, spec: ParcelQuery) -> Select:
        """Translate typed filters into WHERE clauses on a Parcel select."""
        for parcel_filter in spec.filters:
            if isinstance(parcel_filter, StatusFilter):
                query = query.where(Parcel.status.in_(parcel_filter.statuses))

            elif isinstance(parcel_filter, DateRangeFilter):
                if parcel_filter.date_from is not None:
                    query = query.where(Parcel.created_at >= parcel_filter.date_from)
                if parcel_filter.date_to is not None:
                    query = query.where(Parcel.created_at <= parcel_filter.date_to)

            elif isinstance(parcel_filter, SearchFilter):
                pattern = f"%{parcel_filter.text.lower()}%"
                sender = aliased(User)
                pickup = aliased(Address)
                query = query.where(or_(
                    func.lower(Parcel.tracking_number).like(pattern),
                    func.lower(Parcel.description).like(pattern),
                    Parcel.sender_id.in_(
                        select(sender.id).where(func.lower(sender.name).like(pattern))
                    ),
                    Parcel.sender_address_id.in_(
                        select(pickup.id).where(func.lower(pickup.city).like(pattern))
                    ),
                ))
        return query

    @staticmethod
    async def paginate(
        db: AsyncSession,
        query: Select,
        page: int,
        limit: int,
        order_by=None,
    ) -> Tuple[List[Parcel], int]:
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await db.execute(count_query)).scalar_one()

        if order_by is None:
            order_by = (Parcel.created_at.desc(), Parcel.id.desc())
        offset = (page - 1) * limit
        result = await db.execute(query.order_by(*order_by).offset(offset).limit(limit))
        return list(result.scalars().all()), total

    @staticmethod
    def append_history(
        db: AsyncSession,
        parcel_id: int,
        status: ParcelStatus,
        actor_id: Optional[int],
        location: Optional[str] = None,
        description: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> TrackingHistory:
        """Add a ledger entry to the caller's transaction."""
        entry = TrackingHistory(
            parcel_id=parcel_id,
            status=status,
            location=location,
            description=description or default_description(status),
            latitude=latitude,
            longitude=longitude,
            updated_by=actor_id,
            timestamp=timestamp or datetime.utcnow(),
        )
        db.add(entry)
        return entry

    @staticmethod
    async def list_history(db: AsyncSession, parcel_id: int, limit: Optional[int] = None) -> List[TrackingHistory]:
        query = select(TrackingHistory).where(
            TrackingHistory.parcel_id == parcel_id
        ).order_by(TrackingHistory.timestamp.desc(), TrackingHistory.id.desc())
        if limit:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def record_transition(db: AsyncSession, parcel: Parcel, change: StatusChange) -> Parcel:
        """
        Write one validated status transition in a single commit:

        1. status, updated_by (and actual_delivery on DELIVERED)
        2. tracking history entry
        3. delivery attempt for DELIVERED / DELAYED / RETURNED
        4. completion of the ACTIVE assignment on DELIVERED

        The parcel's version column makes the UPDATE conditional on the
        version that was read.

        Raises:
            ConcurrentUpdateError: the parcel (or its assignment) changed
                since it was loaded. Nothing is written.
        """
        now = datetime.utcnow()
        new_status = change.new_status

        parcel.status = new_status
        parcel.updated_by = change.actor_id
        if new_status == ParcelStatus.DELIVERED:
            parcel.actual_delivery = now

        ParcelStore.append_history(
            db,
            parcel_id=parcel.id,
            status=new_status,
            actor_id=change.actor_id,
            location=change.location,
            description=change.description,
            latitude=change.latitude,
            longitude=change.longitude,
            timestamp=now,
        )

        if records_attempt(new_status):
            db.add(DeliveryAttempt(
                parcel_id=parcel.id,
                status=classify_attempt(new_status, change.courier_notes),
                reason=change.courier_notes,
                courier_notes=change.courier_notes,
                latitude=change.latitude,
                longitude=change.longitude,
                photo_url=change.photo_url,
                attempt_date=now,
                next_attempt=next_attempt_at(new_status, now),
            ))

        if new_status == ParcelStatus.DELIVERED:
            ParcelStore._complete_assignment(parcel, change.courier_id, now)

        await ParcelStore.commit(db, parcel)
        return parcel

    @staticmethod
    async def commit(db: AsyncSession, parcel: Parcel) -> None:
        """Commit pending parcel changes, mapping a version mismatch to 409."""
        parcel_id = parcel.id
        try:
            await db.commit()
        except StaleDataError:
            await db.rollback()
            logger.warning("Concurrent update rejected for parcel %s", parcel_id)
            raise ConcurrentUpdateError("Parcel", parcel_id)

    @staticmethod
    def _complete_assignment(parcel: Parcel, courier_id: Optional[int], now: datetime) -> Optional[CourierAssignment]:
        for assignment in parcel.assignments:
            if assignment.status != CourierAssignmentStatus.ACTIVE:
                continue
            if courier_id is not None and assignment.courier_id != courier_id:
                continue
            assignment.status = CourierAssignmentStatus.COMPLETED
            assignment.completed_at = now
            return assignment
        return None

    @staticmethod
    def courier_parcels(courier_id: int) -> Select:
        """Non-deleted parcels with an ACTIVE assignment for the courier."""
        return ParcelStore.active_parcels().where(
            Parcel.id.in_(
                select(CourierAssignment.parcel_id).where(and_(
                    CourierAssignment.courier_id == courier_id,
                    CourierAssignment.status == CourierAssignmentStatus.ACTIVE,
                ))
            )
        )
