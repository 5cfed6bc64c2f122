"""
Public Tracking API.

Anyone holding a tracking number can follow the parcel. No authentication,
no contact details.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.db.session import get_db
from sendit.app.schemas.parcel import TrackingResponse
from sendit.app.services.parcel_service import ParcelService

router = APIRouter(prefix="/track", tags=["Tracking"])


@router.get("/{tracking_number}", response_model=TrackingResponse)
async def track_parcel(
    tracking_number: str = Path(..., min_length=1, max_length=20, description="Tracking number, e.g. ST-1234567"),
    db: AsyncSession = Depends(get_db)
):
    """Current status and full tracking history, newest first."""
    return await ParcelService.track_parcel(db, tracking_number)
