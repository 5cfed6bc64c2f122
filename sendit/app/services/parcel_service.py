"""
Parcel Service.

Sender- and admin-facing parcel operations: creation, listing, public
tracking, history, cancellation and soft deletion. Status changes are
delegated to the parcel workflow.
"""

import logging
import secrets
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.exceptions import ResourceNotFoundError, TrackingNumberExhaustedError
from sendit.app.core.guards import is_admin, parcel_access
from sendit.app.domain.parcels.query_spec import ParcelQuery
from sendit.app.domain.pricing.pricing_calculator import (
    calculate_shipment_price, estimate_delivery
)
from sendit.app.models.address import Address, Dimensions
from sendit.app.models.enums import UserRole
from sendit.app.models.parcel import Parcel
from sendit.app.models.parcel_enums import ParcelStatus
from sendit.app.models.user import User
from sendit.app.schemas.parcel import (
    ParcelCreate, RecipientIn, TrackingHistoryResponse, TrackingLocation, TrackingResponse
)
from sendit.app.services.audit import AuditAction, log_event
from sendit.app.services.parcel_store import ParcelStore
from sendit.app.services.parcel_workflow import parcel_workflow
from sendit.app.services.tracking_cache import tracking_cache

logger = logging.getLogger(__name__)

MAX_TRACKING_NUMBER_ATTEMPTS = 10

INITIAL_DESCRIPTIONS = {
    ParcelStatus.PROCESSING: "Parcel created and processing",
    ParcelStatus.DRAFT: "Parcel saved as draft",
    ParcelStatus.PAYMENT_PENDING: "Parcel created, awaiting payment",
}


def random_tracking_number() -> str:
    return f"ST-{secrets.randbelow(10_000_000):07d}"


def initial_status(payload: ParcelCreate) -> ParcelStatus:
    if payload.save_as_draft:
        return ParcelStatus.DRAFT
    if payload.payment_required:
        return ParcelStatus.PAYMENT_PENDING
    return ParcelStatus.PROCESSING


class ParcelService:

    @staticmethod
    async def generate_tracking_number(
        db: AsyncSession,
        generator: Callable[[], str] = random_tracking_number,
    ) -> str:
        """
        Pick an unused `ST-NNNNNNN` tracking number.

        Raises:
            TrackingNumberExhaustedError: after 10 collisions
        """
        for _ in range(MAX_TRACKING_NUMBER_ATTEMPTS):
            candidate = generator()
            if not await ParcelStore.tracking_number_exists(db, candidate):
                return candidate
        logger.error("No free tracking number after %d attempts", MAX_TRACKING_NUMBER_ATTEMPTS)
        raise TrackingNumberExhaustedError(MAX_TRACKING_NUMBER_ATTEMPTS)

    @staticmethod
    async def insert_parcel(
        db: AsyncSession,
        generator: Optional[Callable[[], str]] = None,
        **fields,
    ) -> Parcel:
        """
        Insert a parcel under a fresh tracking number.

        The pre-check in `generate_tracking_number` can lose a race with a
        concurrent insert, so the INSERT runs in a savepoint and a unique
        violation on the tracking number starts over with a new one.

        Raises:
            TrackingNumberExhaustedError: after 10 attempts
        """
        for _ in range(MAX_TRACKING_NUMBER_ATTEMPTS):
            tracking_number = await ParcelService.generate_tracking_number(
                db, generator or random_tracking_number
            )
            parcel = Parcel(tracking_number=tracking_number, **fields)
            try:
                async with db.begin_nested():
                    db.add(parcel)
            except IntegrityError as exc:
                if "tracking_number" not in str(exc.orig):
                    raise
                logger.warning("Tracking number %s taken concurrently, retrying", tracking_number)
                continue
            return parcel
        logger.error("No free tracking number after %d attempts", MAX_TRACKING_NUMBER_ATTEMPTS)
        raise TrackingNumberExhaustedError(MAX_TRACKING_NUMBER_ATTEMPTS)

    @staticmethod
    async def resolve_recipient(db: AsyncSession, recipient: RecipientIn) -> User:
        """Find the recipient by email, or create a shell customer account."""
        email = recipient.email.lower()
        result = await db.execute(
            select(User).where(User.email == email, User.deleted_at.is_(None))
        )
        user = result.scalar_one_or_none()
        if user:
            return user

        user = User(
            email=email,
            name=recipient.name,
            phone=recipient.phone,
            role=UserRole.CUSTOMER,
            is_registered=False,
        )
        db.add(user)
        await db.flush()
        logger.info("Created shell account %s for recipient", user.id)
        return user

    @staticmethod
    async def create_parcel(db: AsyncSession, sender: dict, payload: ParcelCreate) -> Parcel:
        """
        Create a parcel with its addresses, price and first ledger entry.

        Everything is written in one commit.
        """
        sender_id = sender["user_id"]
        now = datetime.utcnow()

        recipient = await ParcelService.resolve_recipient(db, payload.recipient)

        sender_address = Address(**payload.sender_address.model_dump())
        recipient_address = Address(**payload.recipient_address.model_dump())
        db.add_all([sender_address, recipient_address])

        dimensions = None
        if payload.dimensions:
            dimensions = Dimensions(**payload.dimensions.model_dump())
            db.add(dimensions)

        await db.flush()

        quote = calculate_shipment_price(
            payload.weight,
            payload.delivery_type,
            payload.insurance_coverage,
            payload.weight_unit,
        )
        status = initial_status(payload)

        parcel = await ParcelService.insert_parcel(
            db,
            sender_id=sender_id,
            recipient_id=recipient.id,
            sender_address_id=sender_address.id,
            recipient_address_id=recipient_address.id,
            dimensions_id=dimensions.id if dimensions else None,
            status=status,
            package_type=payload.package_type,
            delivery_type=payload.delivery_type,
            weight=payload.weight,
            weight_unit=payload.weight_unit,
            description=payload.description,
            estimated_value=payload.estimated_value,
            insurance_coverage=payload.insurance_coverage,
            fragile=payload.fragile,
            perishable=payload.perishable,
            hazardous_material=payload.hazardous_material,
            high_value=payload.high_value,
            signature_required=payload.signature_required,
            hold_at_pickup_point=payload.hold_at_pickup_point,
            pickup_instructions=payload.pickup_instructions,
            delivery_instructions=payload.delivery_instructions,
            base_price=quote.base_price,
            additional_fees=quote.insurance_fee,
            total_price=quote.total_price,
            currency=quote.currency,
            estimated_delivery=estimate_delivery(payload.delivery_type, now),
            created_by=sender_id,
            updated_by=sender_id,
        )
        tracking_number = parcel.tracking_number

        ParcelStore.append_history(
            db,
            parcel_id=parcel.id,
            status=status,
            actor_id=sender_id,
            description=INITIAL_DESCRIPTIONS[status],
            timestamp=now,
        )
        await log_event(
            db,
            action=AuditAction.PARCEL_CREATED,
            actor_id=sender_id,
            actor_email=sender.get("sub"),
            parcel_id=parcel.id,
            metadata={
                "tracking_number": tracking_number,
                "status": status.value,
                "total_price": quote.total_price,
            },
        )
        await db.commit()

        logger.info("Parcel %s created by user %s (%s)", tracking_number, sender_id, status.value)
        return await ParcelStore.get_parcel(db, parcel.id, refresh=True)

    @staticmethod
    async def get_parcel_for_user(db: AsyncSession, parcel_id: int, current_user: dict) -> Parcel:
        parcel = await ParcelStore.get_parcel(db, parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)
        parcel_access.enforce_view(parcel, current_user)
        return parcel

    @staticmethod
    async def list_parcels(
        db: AsyncSession,
        current_user: dict,
        spec: ParcelQuery,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Parcel], int]:
        """Admins see every parcel, everyone else the ones they send or receive."""
        query = ParcelStore.active_parcels()
        if not is_admin(current_user):
            user_id = current_user["user_id"]
            query = query.where(or_(Parcel.sender_id == user_id, Parcel.recipient_id == user_id))
        query = ParcelStore.apply_filters(query, spec)
        return await ParcelStore.paginate(db, query, page, limit)

    @staticmethod
    def tracking_view(parcel: Parcel) -> TrackingResponse:
        return TrackingResponse(
            tracking_number=parcel.tracking_number,
            status=parcel.status,
            package_type=parcel.package_type,
            delivery_type=parcel.delivery_type,
            origin=TrackingLocation.model_validate(parcel.sender_address),
            destination=TrackingLocation.model_validate(parcel.recipient_address),
            estimated_delivery=parcel.estimated_delivery,
            actual_delivery=parcel.actual_delivery,
            tracking_history=[
                TrackingHistoryResponse.model_validate(entry) for entry in parcel.tracking_history
            ],
            created_at=parcel.created_at,
        )

    @staticmethod
    async def track_parcel(db: AsyncSession, tracking_number: str) -> TrackingResponse:
        """
        Public, read-only lookup by tracking number.

        Served from the Redis cache when the cached view was built from the
        parcel's current version. Deleted parcels are not found.
        """
        version = await ParcelStore.current_version(db, tracking_number)
        if version is not None:
            cached = await tracking_cache.get(tracking_number, version)
            if cached is not None:
                return TrackingResponse.model_validate(cached)

        parcel = await ParcelStore.get_by_tracking_number(db, tracking_number)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", message=f"Parcel with tracking number {tracking_number} not found")

        view = ParcelService.tracking_view(parcel)
        await tracking_cache.set(tracking_number, parcel.version, view.model_dump(mode="json"))
        return view

    @staticmethod
    async def get_history(db: AsyncSession, parcel_id: int, current_user: dict, limit: Optional[int] = None):
        parcel = await ParcelService.get_parcel_for_user(db, parcel_id, current_user)
        entries = await ParcelStore.list_history(db, parcel.id, limit)
        return parcel, entries

    @staticmethod
    async def cancel_parcel(db: AsyncSession, parcel_id: int, current_user: dict, reason: Optional[str] = None) -> Parcel:
        """Sender cancels their own parcel. Only allowed before pickup."""
        parcel = await ParcelStore.get_parcel(db, parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)
        parcel_access.enforce_sender(parcel, current_user)

        description = "Parcel cancelled by sender"
        if reason:
            description = f"{description}: {reason}"

        return await parcel_workflow.update_parcel_status(
            db,
            parcel_id=parcel.id,
            new_status=ParcelStatus.CANCELLED,
            actor_id=current_user["user_id"],
            description=description,
        )

    @staticmethod
    async def soft_delete_parcel(db: AsyncSession, parcel_id: int, current_user: dict) -> None:
        """Hide a parcel from every query. Rows are kept."""
        parcel = await ParcelStore.get_parcel(db, parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)

        await log_event(
            db,
            action=AuditAction.PARCEL_DELETED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            parcel_id=parcel.id,
            metadata={"tracking_number": parcel.tracking_number, "status": parcel.status.value},
        )
        parcel.deleted_at = datetime.utcnow()
        parcel.updated_by = current_user["user_id"]
        await ParcelStore.commit(db, parcel)
        await tracking_cache.invalidate(parcel.tracking_number)
        logger.info("Parcel %s soft-deleted by user %s", parcel.tracking_number, current_user["user_id"])
