"""
Permission classes for the coverage API.

Ownership (writer, provider) is checked by the service layer because it
depends on the loaded order/provider; the only view-level permission is the
admin allowlist.
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import permissions


class IsCoverageAdmin(permissions.BasePermission):
    """
    Allows access to callers listed in COVERAGE_ADMIN_USER_IDS.

    An empty list admits any authenticated caller: the upstream gateway
    already enforces the admin role on /admin routes.
    """

    message = "Admin access required"

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        admin_ids = settings.COVERAGE_ADMIN_USER_IDS
        return not admin_ids or user.id in admin_ids
