"""
Courier Service.

Everything a courier sees and does: the deliveries assigned to them,
delivery status updates with an optional proof-of-delivery photo, and
earnings/stats computed from completed assignments.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.config import settings
from sendit.app.core.exceptions import ConcurrentUpdateError, ResourceNotFoundError, ValidationFailedError
from sendit.app.domain.parcels.query_spec import DateRangeFilter, ParcelQuery, StatusFilter
from sendit.app.domain.pricing.earnings_calculator import (
    address_distance, calculate_daily_bonus, calculate_delivery_earnings,
    determine_priority, total_earnings
)
from sendit.app.domain.workflow.transitions import validate_transition
from sendit.app.models.courier_assignment import CourierAssignment
from sendit.app.models.parcel import Parcel
from sendit.app.models.parcel_enums import CourierAssignmentStatus, DeliveryFilterType, ParcelStatus
from sendit.app.schemas.courier import (
    CourierDeliveryResponse, CourierEarningsResponse, CourierStatsResponse,
    DailyEarnings, DeliveryStatusForm, MonthlyEarnings, WeeklyEarnings
)
from sendit.app.schemas.parcel import ParcelResponse
from sendit.app.services.parcel_store import ParcelStore, StatusChange
from sendit.app.services.parcel_workflow import ParcelWorkflow, parcel_workflow
from sendit.app.services.ratings import RatingsProvider, ratings_provider
from sendit.app.services.upload_service import UploadService, upload_service

logger = logging.getLogger(__name__)

DELIVERY_TYPE_STATUSES = {
    DeliveryFilterType.PICKUP: (ParcelStatus.PROCESSING, ParcelStatus.PAYMENT_CONFIRMED),
    DeliveryFilterType.DELIVERY: (
        ParcelStatus.PICKED_UP, ParcelStatus.IN_TRANSIT, ParcelStatus.OUT_FOR_DELIVERY
    ),
}


def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    """Both or neither, and within range."""
    if (latitude is None) != (longitude is None):
        raise ValidationFailedError(
            "Latitude and longitude must be provided together",
            details={"latitude": latitude, "longitude": longitude},
        )
    if latitude is None:
        return
    if not -90 <= latitude <= 90:
        raise ValidationFailedError("Latitude must be between -90 and 90", details={"latitude": latitude})
    if not -180 <= longitude <= 180:
        raise ValidationFailedError("Longitude must be between -180 and 180", details={"longitude": longitude})


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime) -> datetime:
    # Weeks start on Sunday
    today = start_of_day(now)
    return today - timedelta(days=(today.weekday() + 1) % 7)


def start_of_month(now: datetime) -> datetime:
    return start_of_day(now).replace(day=1)


def to_delivery_response(parcel: Parcel, now: Optional[datetime] = None) -> CourierDeliveryResponse:
    base = ParcelResponse.model_validate(parcel).model_dump()
    return CourierDeliveryResponse(
        **base,
        distance_km=round(address_distance(parcel.sender_address, parcel.recipient_address), 2),
        estimated_earnings=calculate_delivery_earnings(parcel),
        priority=determine_priority(parcel, now),
    )


class CourierService:

    def __init__(
        self,
        workflow: ParcelWorkflow = parcel_workflow,
        uploads: UploadService = upload_service,
        ratings: RatingsProvider = ratings_provider,
    ):
        self.workflow = workflow
        self.uploads = uploads
        self.ratings = ratings

    async def get_my_deliveries(
        self,
        db: AsyncSession,
        courier_id: int,
        spec: Optional[ParcelQuery] = None,
        delivery_type: Optional[DeliveryFilterType] = None,
    ) -> List[Parcel]:
        """Parcels actively assigned to the courier, soonest due first."""
        spec = spec or ParcelQuery()
        if delivery_type is not None:
            spec = spec.with_filter(StatusFilter(statuses=DELIVERY_TYPE_STATUSES[delivery_type]))

        query = ParcelStore.apply_filters(ParcelStore.courier_parcels(courier_id), spec)
        query = query.order_by(
            Parcel.estimated_delivery.asc(), Parcel.created_at.desc(), Parcel.id.desc()
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_today_route(self, db: AsyncSession, courier_id: int) -> List[Parcel]:
        today = start_of_day(datetime.utcnow())
        spec = ParcelQuery(filters=[
            DateRangeFilter(date_from=today, date_to=today + timedelta(days=1))
        ])
        return await self.get_my_deliveries(db, courier_id, spec)

    async def get_delivery(self, db: AsyncSession, parcel_id: int, courier_id: int) -> Parcel:
        """A parcel the courier holds an ACTIVE assignment for, else 404."""
        result = await db.execute(
            ParcelStore.courier_parcels(courier_id).where(Parcel.id == parcel_id)
        )
        parcel = result.scalar_one_or_none()
        if parcel is None:
            raise ResourceNotFoundError(
                "Delivery",
                parcel_id,
                message=f"Delivery with ID {parcel_id} not found or not assigned to courier",
            )
        return parcel

    async def update_delivery_status(
        self,
        db: AsyncSession,
        parcel_id: int,
        courier_id: int,
        form: DeliveryStatusForm,
        photo: Optional[bytes] = None,
        photo_content_type: Optional[str] = None,
    ) -> Parcel:
        """
        Courier-driven status change.

        Checks run before anything is stored: assignment, coordinates,
        transition, then photo requirement. The photo is uploaded last,
        right before the workflow commits.
        """
        parcel = await self.get_delivery(db, parcel_id, courier_id)

        validate_coordinates(form.latitude, form.longitude)
        validate_transition(parcel.status, form.status)

        if form.status == ParcelStatus.DELIVERED and settings.delivery_photo_required and not photo:
            raise ValidationFailedError("A delivery photo is required to mark a parcel DELIVERED")

        photo_url = None
        if photo:
            photo_url = await self.uploads.upload_image(photo, photo_content_type, prefix=f"parcel-{parcel.id}")

        change = StatusChange(
            new_status=form.status,
            actor_id=courier_id,
            location=form.location,
            description=form.description,
            latitude=form.latitude,
            longitude=form.longitude,
            courier_notes=form.courier_notes,
            courier_id=courier_id,
            photo_url=photo_url,
        )
        try:
            return await self.workflow.apply(db, parcel, change)
        except ConcurrentUpdateError:
            if photo_url:
                await self.uploads.delete(photo_url)
            raise

    async def _completed_assignments(
        self,
        db: AsyncSession,
        courier_id: int,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[CourierAssignment]:
        query = select(CourierAssignment).join(Parcel, CourierAssignment.parcel_id == Parcel.id).where(
            CourierAssignment.courier_id == courier_id,
            CourierAssignment.status == CourierAssignmentStatus.COMPLETED,
            Parcel.deleted_at.is_(None),
        )
        if since is not None:
            query = query.where(CourierAssignment.completed_at >= since)
        if until is not None:
            query = query.where(CourierAssignment.completed_at < until)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def _summarize(assignments: List[CourierAssignment]) -> Tuple[int, int, int]:
        parcels = [assignment.parcel for assignment in assignments]
        pickups = sum(1 for parcel in parcels if parcel.status == ParcelStatus.PICKED_UP)
        return total_earnings(parcels), len(parcels), pickups

    async def get_courier_earnings(
        self,
        db: AsyncSession,
        courier_id: int,
        now: Optional[datetime] = None,
    ) -> CourierEarningsResponse:
        now = now or datetime.utcnow()
        today = start_of_day(now)
        week_start = start_of_week(now)
        month_start = start_of_month(now)

        daily = await self._completed_assignments(db, courier_id, today, today + timedelta(days=1))
        weekly = await self._completed_assignments(db, courier_id, week_start)
        monthly = await self._completed_assignments(db, courier_id, month_start)

        daily_total, daily_count, daily_pickups = self._summarize(daily)
        weekly_total, weekly_count, weekly_pickups = self._summarize(weekly)
        monthly_total, monthly_count, monthly_pickups = self._summarize(monthly)

        return CourierEarningsResponse(
            currency=settings.currency,
            daily=DailyEarnings(
                date=today,
                total_earnings=daily_total,
                deliveries_completed=daily_count,
                pickups_completed=daily_pickups,
                bonus_earnings=calculate_daily_bonus(daily_count),
            ),
            weekly=WeeklyEarnings(
                week_start=week_start,
                total_earnings=weekly_total,
                deliveries_completed=weekly_count,
                pickups_completed=weekly_pickups,
                average_rating=await self.ratings.average_rating(db, courier_id),
            ),
            monthly=MonthlyEarnings(
                month=now.strftime("%B"),
                year=now.year,
                total_earnings=monthly_total,
                deliveries_completed=monthly_count,
                pickups_completed=monthly_pickups,
            ),
        )

    async def get_courier_stats(self, db: AsyncSession, courier_id: int) -> CourierStatsResponse:
        counts = await db.execute(
            select(CourierAssignment.status, func.count(CourierAssignment.id))
            .join(Parcel, CourierAssignment.parcel_id == Parcel.id)
            .where(CourierAssignment.courier_id == courier_id, Parcel.deleted_at.is_(None))
            .group_by(CourierAssignment.status)
        )
        by_status = {status: count for status, count in counts.all()}
        total = sum(by_status.values())
        completed = by_status.get(CourierAssignmentStatus.COMPLETED, 0)

        completed_assignments = await self._completed_assignments(db, courier_id)

        return CourierStatsResponse(
            total_deliveries=total,
            completed_deliveries=completed,
            active_deliveries=by_status.get(CourierAssignmentStatus.ACTIVE, 0),
            success_rate=round(completed / total * 100, 2) if total else 0.0,
            total_earnings=total_earnings(a.parcel for a in completed_assignments),
            average_rating=await self.ratings.average_rating(db, courier_id),
        )


courier_service = CourierService()
