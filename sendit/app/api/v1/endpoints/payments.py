"""
Payment Confirmation API.

Operations relay the gateway's confirmation here; the parcel moves from
PAYMENT_PENDING to PAYMENT_CONFIRMED.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.guards import require_role
from sendit.app.db.session import get_db
from sendit.app.models.enums import UserRole
from sendit.app.schemas.parcel import ParcelResponse
from sendit.app.schemas.payment import PaymentConfirmRequest, PaymentConfirmResponse, PaymentResponse
from sendit.app.services.payment_service import payment_service

router = APIRouter(prefix="/admin/payments", tags=["Admin - Payments"])


@router.post("/confirm", response_model=PaymentConfirmResponse)
async def confirm_payment(
    request: PaymentConfirmRequest,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    payment, parcel = await payment_service.confirm_payment(
        db,
        parcel_id=request.parcel_id,
        reference=request.reference,
        amount=request.amount,
        current_user=current_user,
        currency=request.currency,
    )
    return PaymentConfirmResponse(
        payment=PaymentResponse.model_validate(payment),
        parcel=ParcelResponse.model_validate(parcel),
    )
