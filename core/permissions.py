"""
Custom permission and throttle classes for role based access control.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS
from rest_framework.throttling import AnonRateThrottle

STAFF_ROLES = {"admin", "kader"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsStaffRole(BasePermission):
    """Admins and kader volunteers."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in STAFF_ROLES


class AdminCanDelete(BasePermission):
    """DELETE is reserved for admins; other methods fall through."""
    message = "Hanya admin yang dapat menghapus data"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return request.method != "DELETE" or _role(request) == "admin"


class StaffOrReadOnly(BasePermission):
    """Public reads (GET, HEAD, OPTIONS); writes need a staff role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return request.method in SAFE_METHODS or _role(request) in STAFF_ROLES


class LoginRateThrottle(AnonRateThrottle):
    scope = "login"
