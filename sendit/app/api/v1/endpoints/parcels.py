"""
Parcel API Endpoints.

Senders create and cancel parcels. Senders and recipients list, view and
follow the history of the parcels they are party to. Admins see all.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.dependencies import get_current_user
from sendit.app.core.guards import require_role
from sendit.app.db.session import get_db
from sendit.app.domain.parcels.query_spec import ParcelQuery
from sendit.app.domain.pricing.pricing_calculator import PriceQuote, calculate_shipment_price
from sendit.app.models.enums import UserRole
from sendit.app.models.parcel_enums import DeliveryType, InsuranceCoverage, ParcelStatus, WeightUnit
from sendit.app.schemas.parcel import (
    CancelParcelRequest, HistoryResponse, ParcelCreate, ParcelListResponse, ParcelResponse,
    TrackingHistoryResponse
)
from sendit.app.services.parcel_service import ParcelService

router = APIRouter(prefix="/parcels", tags=["Parcels"])


@router.get("/quote", response_model=PriceQuote)
async def quote_parcel(
    weight: float = Query(..., gt=0),
    weight_unit: WeightUnit = Query(WeightUnit.kg),
    delivery_type: DeliveryType = Query(DeliveryType.STANDARD),
    insurance_coverage: InsuranceCoverage = Query(InsuranceCoverage.NO_INSURANCE),
    current_user: dict = Depends(get_current_user)
):
    """Price a parcel without creating it."""
    return calculate_shipment_price(weight, delivery_type, insurance_coverage, weight_unit)


@router.post("", response_model=ParcelResponse, status_code=status.HTTP_201_CREATED)
async def create_parcel(
    parcel_data: ParcelCreate,
    current_user: dict = Depends(require_role([UserRole.CUSTOMER, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a parcel. The caller is the sender.

    The recipient is matched by email; unknown recipients get a shell account.
    """
    return await ParcelService.create_parcel(db, current_user, parcel_data)


@router.get("", response_model=ParcelListResponse)
async def list_parcels(
    status_filter: Optional[ParcelStatus] = Query(None, alias="status"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List parcels the caller sends or receives (all parcels for admins)."""
    spec = ParcelQuery.build(status=status_filter, date_from=date_from, date_to=date_to, search=search)
    parcels, total = await ParcelService.list_parcels(db, current_user, spec, page, page_size)
    return ParcelListResponse(
        parcels=[ParcelResponse.model_validate(p) for p in parcels],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{parcel_id}", response_model=ParcelResponse)
async def get_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ParcelService.get_parcel_for_user(db, parcel_id, current_user)


@router.get("/{parcel_id}/history", response_model=HistoryResponse)
async def get_parcel_history(
    parcel_id: int = Path(..., description="Parcel ID"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Tracking history, newest first."""
    parcel, entries = await ParcelService.get_history(db, parcel_id, current_user, limit)
    return HistoryResponse(
        parcel_id=parcel.id,
        tracking_number=parcel.tracking_number,
        entries=[TrackingHistoryResponse.model_validate(e) for e in entries],
    )


@router.patch("/{parcel_id}/cancel", response_model=ParcelResponse)
async def cancel_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    request: Optional[CancelParcelRequest] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Sender cancels a parcel that has not been picked up yet."""
    reason = request.reason if request else None
    return await ParcelService.cancel_parcel(db, parcel_id, current_user, reason)
