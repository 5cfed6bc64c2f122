"""
User roles enumeration.

Defines the role types for the SendIT platform.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Operations staff, can move any parcel and dispatch couriers
        COURIER: Picks up and delivers parcels assigned to them
        CUSTOMER: Sends and receives parcels (default role)
    """
    ADMIN = "ADMIN"
    COURIER = "COURIER"
    CUSTOMER = "CUSTOMER"
