"""
Notification Dispatcher.

Fire-and-forget delivery of status-change notifications, decoupled from
the request that changed the status.

- In the API process a single worker drains a bounded queue. It is started
  and stopped by the app lifespan.
- Without a running worker (tests, scripts) each event gets its own task.

Delivery opens its own database session, writes one Notification row per
addressee and sends email through the mail transport. Every failure is
logged and dropped: a notification can never fail or roll back the status
change that triggered it.
"""

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Optional, Set

from pydantic import BaseModel

from sendit.app.core.config import settings
from sendit.app.core.exceptions import NotificationDeliveryError
from sendit.app.db.session import AsyncSessionLocal
from sendit.app.models.notification import Notification, NotificationChannel, NotificationStatus
from sendit.app.models.parcel import Parcel
from sendit.app.models.parcel_enums import ParcelStatus
from sendit.app.services.mail_transport import MailTransport

logger = logging.getLogger(__name__)

# The recipient hears about the last mile only
RECIPIENT_STATUSES = frozenset({ParcelStatus.OUT_FOR_DELIVERY, ParcelStatus.DELIVERED})


class StatusChangeEvent(BaseModel):
    parcel_id: int
    tracking_number: str
    status: ParcelStatus

    class Config:
        frozen = True


def tracking_url(tracking_number: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/track/{tracking_number}"


def render_email(name: Optional[str], headline: str, tracking_number: str):
    link = tracking_url(tracking_number)
    greeting = f"Hello {name}," if name else "Hello,"
    text = f"{greeting}\n\n{headline}\n\nTrack your parcel: {link}\n\nSendIT"
    html = (
        f"<p>{greeting}</p>"
        f"<p>{headline}</p>"
        f'<p><a href="{link}">Track parcel {tracking_number}</a></p>'
        f"<p>SendIT</p>"
    )
    return text, html


class NotificationDispatcher:

    def __init__(
        self,
        session_factory=None,
        transport: Optional[MailTransport] = None,
        queue_size: int = settings.notification_queue_size,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.transport = transport or MailTransport()
        self.queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._worker = asyncio.create_task(self._run(), name="notification-dispatcher")
        logger.info("Notification dispatcher started (queue size %d)", self.queue_size)

    async def stop(self) -> None:
        """Drain queued events, then stop the worker."""
        if self.running:
            await self._queue.join()
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            logger.info("Notification dispatcher stopped")
        self._worker = None
        self._queue = None
        await self.join()

    def dispatch(self, event: StatusChangeEvent) -> None:
        """Schedule delivery and return immediately."""
        if self.running:
            try:
                self._queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "Notification queue full, dropping %s for parcel %s",
                    event.status.value, event.parcel_id,
                )
            return

        task = asyncio.create_task(self.deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def join(self) -> None:
        """Wait until every dispatched event has been handled."""
        if self.running:
            await self._queue.join()
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.deliver(event)
            finally:
                self._queue.task_done()

    async def deliver(self, event: StatusChangeEvent) -> None:
        try:
            await self._deliver(event)
        except Exception:
            logger.exception(
                "Notification dispatch failed for parcel %s (%s)",
                event.parcel_id, event.status.value,
            )

    async def _deliver(self, event: StatusChangeEvent) -> None:
        async with self.session_factory() as db:
            parcel = await db.get(Parcel, event.parcel_id)
            if parcel is None:
                logger.warning("Parcel %s vanished before notification", event.parcel_id)
                return

            await self._notify(
                db, parcel.sender, event,
                subject=f"Parcel {event.tracking_number} - Status Update",
                headline=f"Your parcel status has been updated to: {event.status.value}",
            )

            if event.status in RECIPIENT_STATUSES and parcel.recipient is not None:
                await self._notify(
                    db, parcel.recipient, event,
                    subject=f"Parcel {event.tracking_number} - Delivery Update",
                    headline=f"A parcel addressed to you has been updated to: {event.status.value}",
                )

    async def _notify(self, db, user, event: StatusChangeEvent, subject: str, headline: str) -> Notification:
        notification = Notification(
            user_id=user.id,
            parcel_id=event.parcel_id,
            channel=NotificationChannel.EMAIL,
            status=NotificationStatus.PENDING,
            subject=subject,
            message=headline,
            recipient=user.email,
        )

        if not user.email_notifications:
            notification.status = NotificationStatus.SKIPPED
        else:
            text, html = render_email(user.name, headline, event.tracking_number)
            try:
                sent = await self.transport.send(user.email, user.name, subject, text, html)
            except NotificationDeliveryError as exc:
                logger.warning("Email to user %s for parcel %s failed: %s", user.id, event.parcel_id, exc)
                notification.status = NotificationStatus.FAILED
                notification.error = str(exc)
            else:
                if sent:
                    notification.status = NotificationStatus.SENT
                    notification.sent_at = datetime.utcnow()
                else:
                    notification.status = NotificationStatus.FAILED
                    notification.error = "Mail transport not configured"

        db.add(notification)
        await db.commit()
        return notification


notification_dispatcher = NotificationDispatcher()
