"""
Courier API Endpoints.

Couriers only see parcels they hold an ACTIVE assignment for. Status
updates are multipart so a proof-of-delivery photo can ride along.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.guards import require_role
from sendit.app.db.session import get_db
from sendit.app.domain.parcels.query_spec import ParcelQuery
from sendit.app.models.enums import UserRole
from sendit.app.models.parcel_enums import DeliveryFilterType, ParcelStatus
from sendit.app.schemas.courier import (
    CourierDeliveryList, CourierDeliveryResponse, CourierEarningsResponse,
    CourierStatsResponse, DeliveryStatusForm
)
from sendit.app.services.courier_service import courier_service, to_delivery_response

router = APIRouter(prefix="/courier", tags=["Courier"])

courier_only = require_role([UserRole.COURIER])


@router.get("/deliveries", response_model=CourierDeliveryList)
async def list_my_deliveries(
    status_filter: Optional[ParcelStatus] = Query(None, alias="status"),
    delivery_type: Optional[DeliveryFilterType] = Query(None, alias="type"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    current_user: dict = Depends(courier_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Deliveries assigned to the caller.

    `type=PICKUP` keeps parcels waiting for collection, `type=DELIVERY`
    the ones already on the way.
    """
    spec = ParcelQuery.build(status=status_filter, date_from=date_from, date_to=date_to, search=search)
    parcels = await courier_service.get_my_deliveries(db, current_user["user_id"], spec, delivery_type)
    now = datetime.utcnow()
    return CourierDeliveryList(
        deliveries=[to_delivery_response(p, now) for p in parcels],
        total=len(parcels),
    )


@router.get("/deliveries/today", response_model=List[CourierDeliveryResponse])
async def today_route(
    current_user: dict = Depends(courier_only),
    db: AsyncSession = Depends(get_db)
):
    parcels = await courier_service.get_today_route(db, current_user["user_id"])
    now = datetime.utcnow()
    return [to_delivery_response(p, now) for p in parcels]


@router.get("/deliveries/{parcel_id}", response_model=CourierDeliveryResponse)
async def get_delivery(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(courier_only),
    db: AsyncSession = Depends(get_db)
):
    parcel = await courier_service.get_delivery(db, parcel_id, current_user["user_id"])
    return to_delivery_response(parcel)


@router.post("/deliveries/{parcel_id}/status", response_model=CourierDeliveryResponse)
async def update_delivery_status(
    parcel_id: int = Path(..., description="Parcel ID"),
    status: ParcelStatus = Form(...),
    location: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    courier_notes: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    current_user: dict = Depends(courier_only),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a delivery step (pickup, transit, out for delivery, delivered,
    delayed, returned) with optional coordinates, notes and photo.
    """
    form = DeliveryStatusForm(
        status=status,
        location=location,
        description=description,
        latitude=latitude,
        longitude=longitude,
        courier_notes=courier_notes,
    )
    photo_bytes = None
    photo_type = None
    if photo is not None and photo.filename:
        photo_bytes = await photo.read()
        photo_type = photo.content_type

    parcel = await courier_service.update_delivery_status(
        db, parcel_id, current_user["user_id"], form, photo_bytes, photo_type
    )
    return to_delivery_response(parcel)


@router.get("/earnings", response_model=CourierEarningsResponse)
async def my_earnings(
    current_user: dict = Depends(courier_only),
    db: AsyncSession = Depends(get_db)
):
    """Daily, weekly (from Sunday) and monthly earnings from completed deliveries."""
    return await courier_service.get_courier_earnings(db, current_user["user_id"])


@router.get("/stats", response_model=CourierStatsResponse)
async def my_stats(
    current_user: dict = Depends(courier_only),
    db: AsyncSession = Depends(get_db)
):
    return await courier_service.get_courier_stats(db, current_user["user_id"])
