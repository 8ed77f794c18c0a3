"""
Base service layer patterns for business logic encapsulation.

This module provides:
- ServiceResult: Result wrapper for outcomes that are not errors to the caller
  (e.g. a webhook event that is acknowledged but ignored)
- BaseService: Base class with logging and transaction helpers

Service Layer Philosophy:
    Views handle HTTP, models hold data and state transitions, services
    orchestrate. Services raise core.exceptions errors for anything the
    client must see; the DRF exception handler renders them.

Usage:
    from core.services import BaseService

    class ProviderRegistry(BaseService):
        def register(self, user_id: str, profile: dict) -> Provider:
            with self.atomic():
                provider = Provider.objects.create(user_id=user_id, **profile)
            self.get_logger().info("Provider registered", extra={"provider_id": str(provider.id)})
            return provider
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful
        error: Error message if failed
        error_code: Machine-readable error code

    Usage:
        return ServiceResult.success({"order_id": str(order.id)})
        return ServiceResult.failure("Unknown intent", "order_not_found")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
    ) -> ServiceResult[T]:
        """Create a failed result."""
        return cls(success=False, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides:
    - A logger named after the concrete service class
    - atomic(): explicit transaction boundaries

    Services that talk to the payment processor receive the gateway through
    their constructor, so they hold that collaborator as instance state and
    nothing else.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Return a logger named "<module>.<ClassName>"."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Example:
            with self.atomic():
                order = Order.objects.select_for_update().get(pk=order_id)
                order.apply_transition("claim", turnaround_days=7)
        """
        with transaction.atomic():
            yield
