"""
Authentication for requests forwarded by the upstream API gateway.

The gateway verifies the caller's bearer token and forwards the resolved user
id in the X-Auth-User-Id header. This service trusts that header and never
sees credentials itself, so there is no local user table: request.user is a
lightweight GatewayUser carrying only the id.

Usage:
    REST_FRAMEWORK = {
        "DEFAULT_AUTHENTICATION_CLASSES": [
            "core.authentication.GatewayHeaderAuthentication",
        ],
    }

    # In a view
    actor_id = request.user.id
"""

from __future__ import annotations

from dataclasses import dataclass

from rest_framework.authentication import BaseAuthentication

AUTH_USER_HEADER = "X-Auth-User-Id"


@dataclass(frozen=True)
class GatewayUser:
    """Caller identity resolved by the upstream gateway."""

    id: str

    is_authenticated = True
    is_anonymous = False
    is_active = True

    @property
    def pk(self) -> str:
        return self.id

    def __str__(self) -> str:
        return self.id


class GatewayHeaderAuthentication(BaseAuthentication):
    """
    Authenticate from the X-Auth-User-Id header.

    Returns None when the header is absent or blank so DRF treats the request
    as anonymous; IsAuthenticated then rejects it with 401 (see
    authenticate_header).
    """

    def authenticate(self, request):
        user_id = (request.headers.get(AUTH_USER_HEADER) or "").strip()
        if not user_id:
            return None
        return GatewayUser(id=user_id), None

    def authenticate_header(self, request) -> str:
        return AUTH_USER_HEADER
