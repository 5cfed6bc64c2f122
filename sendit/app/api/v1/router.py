"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from sendit.app.api.v1.endpoints import (
    tracking, parcels, admin_parcels, payments, courier, notifications, pickup_points
)

router = APIRouter()

# Public tracking
router.include_router(tracking.router)

# Senders and recipients
router.include_router(parcels.router)

# Operations
router.include_router(admin_parcels.router)
router.include_router(payments.router)

# Couriers
router.include_router(courier.router)

router.include_router(notifications.router)
router.include_router(pickup_points.router)
