"""
Parcel Status Workflow.

The one entry point that changes a parcel's status. Senders (cancel),
admins (any allowed status), couriers (delivery updates) and payment
confirmation all end up in `ParcelWorkflow.apply`.

Flow:
1. Load the parcel (deleted or missing → 404)
2. Validate the transition against the status table (→ 400)
3. Write status + ledger + attempt + assignment completion in one commit
   (stale version → 409)
4. Invalidate the public tracking cache
5. Hand the change to the notification dispatcher (never blocks, never fails)
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.exceptions import ResourceNotFoundError
from sendit.app.domain.workflow.transitions import validate_transition
from sendit.app.models.parcel import Parcel
from sendit.app.models.parcel_enums import ParcelStatus
from sendit.app.services.notification_dispatcher import (
    NotificationDispatcher, StatusChangeEvent, notification_dispatcher
)
from sendit.app.services.parcel_store import ParcelStore, StatusChange
from sendit.app.services.tracking_cache import TrackingCache, tracking_cache

logger = logging.getLogger(__name__)


class ParcelWorkflow:

    def __init__(
        self,
        cache: TrackingCache = tracking_cache,
        dispatcher: NotificationDispatcher = notification_dispatcher,
    ):
        self.cache = cache
        self.dispatcher = dispatcher

    async def update_parcel_status(
        self,
        db: AsyncSession,
        parcel_id: int,
        new_status: ParcelStatus,
        actor_id: Optional[int],
        location: Optional[str] = None,
        description: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        courier_notes: Optional[str] = None,
        courier_id: Optional[int] = None,
        photo_url: Optional[str] = None,
    ) -> Parcel:
        parcel = await ParcelStore.get_parcel(db, parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)

        change = StatusChange(
            new_status=new_status,
            actor_id=actor_id,
            location=location,
            description=description,
            latitude=latitude,
            longitude=longitude,
            courier_notes=courier_notes,
            courier_id=courier_id,
            photo_url=photo_url,
        )
        return await self.apply(db, parcel, change)

    async def apply(self, db: AsyncSession, parcel: Parcel, change: StatusChange) -> Parcel:
        """Run steps 2-5 for a parcel the caller already loaded."""
        previous = parcel.status
        validate_transition(previous, change.new_status)

        await ParcelStore.record_transition(db, parcel, change)
        logger.info(
            "Parcel %s: %s -> %s (actor %s)",
            parcel.tracking_number, previous.value, change.new_status.value, change.actor_id,
        )

        refreshed = await ParcelStore.get_parcel(db, parcel.id, refresh=True)
        await self.cache.invalidate(refreshed.tracking_number)

        self.dispatcher.dispatch(StatusChangeEvent(
            parcel_id=refreshed.id,
            tracking_number=refreshed.tracking_number,
            status=refreshed.status,
        ))
        return refreshed


parcel_workflow = ParcelWorkflow()
