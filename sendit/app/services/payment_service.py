"""
Payment Service.

Records a payment outcome relayed from the gateway and moves the parcel
from PAYMENT_PENDING to PAYMENT_CONFIRMED. The payment row, its audit
entry and the status transition are committed together.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.exceptions import ResourceNotFoundError, ValidationFailedError
from sendit.app.domain.workflow.transitions import validate_transition
from sendit.app.models.parcel import Parcel
from sendit.app.models.parcel_enums import ParcelStatus, PaymentStatus
from sendit.app.models.payment import Payment
from sendit.app.services.audit import AuditAction, log_event
from sendit.app.services.parcel_store import ParcelStore, StatusChange
from sendit.app.services.parcel_workflow import ParcelWorkflow, parcel_workflow

logger = logging.getLogger(__name__)

PAYMENT_CONFIRMED_DESCRIPTION = "Payment confirmed, parcel ready for pickup"


class PaymentService:

    def __init__(self, workflow: ParcelWorkflow = parcel_workflow):
        self.workflow = workflow

    async def confirm_payment(
        self,
        db: AsyncSession,
        parcel_id: int,
        reference: str,
        amount: float,
        current_user: dict,
        currency: Optional[str] = None,
    ) -> Tuple[Payment, Parcel]:
        """
        Mark the payment PAID and confirm the parcel.

        Raises:
            ResourceNotFoundError: parcel missing or deleted
            InvalidTransitionError: parcel is not awaiting payment
            ValidationFailedError: reference already used for another parcel
        """
        parcel = await ParcelStore.get_parcel(db, parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)

        validate_transition(parcel.status, ParcelStatus.PAYMENT_CONFIRMED)

        result = await db.execute(select(Payment).where(Payment.reference == reference))
        payment = result.scalar_one_or_none()
        if payment is not None and payment.parcel_id != parcel.id:
            raise ValidationFailedError(
                "Payment reference belongs to another parcel",
                details={"reference": reference},
            )
        if payment is None:
            payment = Payment(parcel_id=parcel.id, reference=reference)
            db.add(payment)

        payment.amount = amount
        payment.currency = (currency or parcel.currency).upper()
        payment.status = PaymentStatus.PAID
        payment.paid_at = datetime.utcnow()

        await log_event(
            db,
            action=AuditAction.PAYMENT_CONFIRMED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            parcel_id=parcel.id,
            metadata={"reference": reference, "amount": amount, "currency": payment.currency},
        )

        parcel = await self.workflow.apply(db, parcel, StatusChange(
            new_status=ParcelStatus.PAYMENT_CONFIRMED,
            actor_id=current_user["user_id"],
            description=PAYMENT_CONFIRMED_DESCRIPTION,
        ))
        logger.info("Payment %s confirmed for parcel %s", reference, parcel.tracking_number)
        return payment, parcel


payment_service = PaymentService()
