"""Custom DRF permissions for the conference platform."""

from rest_framework import permissions
import logging

logger = logging.getLogger(__name__)


class IsConferenceAdmin(permissions.BasePermission):
    """Staff users manage conference pricing, fees and registrations."""

    message = "You don't have permission to manage this conference."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        allowed = user.is_staff or user.is_superuser
        if not allowed:
            logger.warning(f"[PERMISSIONS] User {user.pk} denied on {view.__class__.__name__}")
        return allowed
