"""
Pickup Points API.

Listing is public so senders can choose where a parcel is held.
Everything else is ADMIN only.
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.guards import require_role
from sendit.app.db.session import get_db
from sendit.app.models.enums import UserRole
from sendit.app.models.parcel_enums import PickupPointType
from sendit.app.schemas.pickup_point import (
    PickupPointCreate, PickupPointListResponse, PickupPointResponse, PickupPointUpdate,
)
from sendit.app.services.pickup_point_service import PickupPointService, total_pages

router = APIRouter(prefix="/pickup-points", tags=["Pickup Points"])


@router.get("", response_model=PickupPointListResponse)
async def list_pickup_points(
    point_type: Optional[PickupPointType] = Query(None, alias="type"),
    county: Optional[str] = Query(None, max_length=100),
    city: Optional[str] = Query(None, max_length=100),
    is_active: Optional[bool] = Query(True),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["name", "city", "county", "rating", "created_at"] = Query("county"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    db: AsyncSession = Depends(get_db)
):
    points, total = await PickupPointService.list_points(
        db,
        point_type=point_type,
        county=county,
        city=city,
        is_active=is_active,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return PickupPointListResponse(
        pickup_points=[PickupPointResponse.model_validate(p) for p in points],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get("/nearest", response_model=List[PickupPointResponse])
async def nearest_pickup_points(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    limit: int = Query(5, ge=1, le=20),
    db: AsyncSession = Depends(get_db)
):
    """Closest active pickup points to a coordinate."""
    ranked = await PickupPointService.nearest(db, latitude, longitude, limit)
    return [
        PickupPointResponse.model_validate(point).model_copy(update={"distance_km": round(distance, 2)})
        for point, distance in ranked
    ]


@router.post("", response_model=PickupPointResponse, status_code=status.HTTP_201_CREATED)
async def create_pickup_point(
    payload: PickupPointCreate,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await PickupPointService.create(db, payload)


@router.get("/{point_id}", response_model=PickupPointResponse)
async def get_pickup_point(
    point_id: int,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await PickupPointService.get(db, point_id)


@router.put("/{point_id}", response_model=PickupPointResponse)
async def update_pickup_point(
    point_id: int,
    payload: PickupPointUpdate,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await PickupPointService.update(db, point_id, payload)


@router.delete("/{point_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pickup_point(
    point_id: int,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    await PickupPointService.delete(db, point_id)
