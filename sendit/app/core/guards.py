"""
Security guards for role-based and ownership-based access control.
"""

from typing import List
from fastapi import Depends
from sendit.app.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from sendit.app.models.enums import UserRole
from sendit.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/admin/parcels/{parcel_id}/assign")
        async def assign(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Raises:
        InsufficientPermissionsError 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        try:
            user_role = UserRole(current_user.get("role"))
        except ValueError:
            raise InsufficientPermissionsError("Invalid role in token")

        if user_role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


def is_admin(current_user: dict) -> bool:
    return current_user.get("role") == UserRole.ADMIN.value


class ParcelAccessGuard:
    """
    Ownership guard for parcels.

    Senders and recipients see their own parcels, admins see everything.
    A parcel the caller may not see is reported as not found so its
    existence is not leaked.
    """

    def can_view(self, parcel, current_user: dict) -> bool:
        if is_admin(current_user):
            return True
        user_id = current_user.get("user_id")
        return user_id in (parcel.sender_id, parcel.recipient_id)

    def enforce_view(self, parcel, current_user: dict) -> None:
        if not self.can_view(parcel, current_user):
            raise ResourceNotFoundError("Parcel", parcel.id)

    def enforce_sender(self, parcel, current_user: dict) -> None:
        if parcel.sender_id != current_user.get("user_id"):
            raise ResourceNotFoundError("Parcel", parcel.id)


parcel_access = ParcelAccessGuard()
