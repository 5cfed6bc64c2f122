"""
Pickup Point Service.

Admin-managed catalogue of collection points. The public list only shows
active points unless asked otherwise.
"""

import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.exceptions import ResourceNotFoundError
from sendit.app.domain.pricing.earnings_calculator import haversine_distance
from sendit.app.models.parcel_enums import PickupPointType
from sendit.app.models.pickup_point import PickupPoint
from sendit.app.schemas.pickup_point import PickupPointCreate, PickupPointUpdate

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "name": PickupPoint.name,
    "city": PickupPoint.city,
    "county": PickupPoint.county,
    "rating": PickupPoint.rating,
    "created_at": PickupPoint.created_at,
}


class PickupPointService:

    @staticmethod
    async def create(db: AsyncSession, payload: PickupPointCreate) -> PickupPoint:
        point = PickupPoint(**payload.model_dump())
        db.add(point)
        await db.commit()
        await db.refresh(point)
        logger.info("Pickup point %s created in %s", point.id, point.county)
        return point

    @staticmethod
    async def get(db: AsyncSession, point_id: int) -> PickupPoint:
        point = await db.get(PickupPoint, point_id)
        if point is None:
            raise ResourceNotFoundError("Pickup point", point_id)
        return point

    @staticmethod
    async def list_points(
        db: AsyncSession,
        point_type: Optional[PickupPointType] = None,
        county: Optional[str] = None,
        city: Optional[str] = None,
        is_active: Optional[bool] = True,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "county",
        sort_order: str = "asc",
    ) -> Tuple[List[PickupPoint], int]:
        """
        Filtered, paginated listing.

        `city` matches case-insensitively anywhere in the name. Passing
        `is_active=None` includes inactive points.
        """
        query = select(PickupPoint)
        if is_active is not None:
            query = query.where(PickupPoint.is_active.is_(is_active))
        if point_type is not None:
            query = query.where(PickupPoint.type == point_type)
        if county:
            query = query.where(PickupPoint.county == county)
        if city:
            query = query.where(func.lower(PickupPoint.city).like(f"%{city.lower()}%"))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar_one()

        column = SORT_COLUMNS.get(sort_by, PickupPoint.county)
        ordering = column.desc() if sort_order == "desc" else column.asc()
        result = await db.execute(
            query.order_by(ordering, PickupPoint.id).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def nearest(
        db: AsyncSession,
        latitude: float,
        longitude: float,
        limit: int = 5,
    ) -> List[Tuple[PickupPoint, float]]:
        """Active points ordered by great-circle distance in km."""
        result = await db.execute(select(PickupPoint).where(PickupPoint.is_active.is_(True)))
        ranked = [
            (point, haversine_distance(latitude, longitude, point.latitude, point.longitude))
            for point in result.scalars().all()
        ]
        ranked.sort(key=lambda pair: pair[1])
        return ranked[:limit]

    @staticmethod
    async def update(db: AsyncSession, point_id: int, payload: PickupPointUpdate) -> PickupPoint:
        point = await PickupPointService.get(db, point_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(point, field, value)
        await db.commit()
        await db.refresh(point)
        return point

    @staticmethod
    async def delete(db: AsyncSession, point_id: int) -> None:
        point = await PickupPointService.get(db, point_id)
        await db.delete(point)
        await db.commit()
        logger.info("Pickup point %s deleted", point_id)


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0
