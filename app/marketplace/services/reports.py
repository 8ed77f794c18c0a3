"""
Earnings statement and payout ledger.

Both reports are derived from stored order fields at read time: COMPLETED
and REFUNDED orders whose updated_at falls in the requested UTC month,
oldest first. Refunded orders report a provider payout of 0.

Usage:
    service = ReportService()
    month = parse_month("2026-03")
    report = service.earnings_statement(provider_id, month, actor_user_id)
    csv_text = render_csv(EARNINGS_CSV_COLUMNS, report["rows"])
"""

from __future__ import annotations

import csv
import io
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING, Any

from django.utils import timezone

from core.exceptions import ValidationError
from core.services import BaseService

from marketplace.models import Order
from marketplace.services.providers import get_provider, require_provider_owner
from marketplace.state_machines import ORDER_SETTLED_STATES, OrderStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from django.db.models import QuerySet

EARNINGS_CSV_COLUMNS = (
    "order_id",
    "status",
    "updated_at",
    "gross_cents",
    "platform_fee_cents",
    "provider_payout_cents",
    "transfer_id",
)

LEDGER_CSV_COLUMNS = (
    "order_id",
    "provider_id",
    "writer_user_id",
    "status",
    "updated_at",
    "gross_cents",
    "platform_fee_cents",
    "provider_payout_cents",
    "transfer_id",
    "payment_intent_id",
)

MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class ReportMonth:
    """A UTC calendar month: [start, end)."""

    label: str
    start: datetime
    end: datetime


def parse_month(value: str | None) -> ReportMonth:
    """
    Parse "YYYY-MM"; None means the current UTC month.

    Raises:
        ValidationError: invalid_month
    """
    if value is None:
        now = timezone.now().astimezone(dt_timezone.utc)
        year, month = now.year, now.month
    else:
        match = MONTH_PATTERN.match(value)
        if match is None:
            raise ValidationError(
                "month must be formatted as YYYY-MM",
                error_code="invalid_month",
                details={"month": value},
            )
        year, month = int(match.group(1)), int(match.group(2))

    start = datetime(year, month, 1, tzinfo=dt_timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=dt_timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=dt_timezone.utc)
    return ReportMonth(label=f"{year:04d}-{month:02d}", start=start, end=end)


def _payout_cents(order: Order) -> int:
    return 0 if order.status == OrderStatus.REFUNDED else order.provider_payout_cents


def _isoformat(value: datetime) -> str:
    return value.astimezone(dt_timezone.utc).isoformat().replace("+00:00", "Z")


def render_csv(columns: Iterable[str], rows: Iterable[dict[str, Any]]) -> str:
    """RFC 4180 quoting, "\\n" between lines, None rendered as empty."""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=list(columns),
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
        extrasaction="ignore",
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return buffer.getvalue().removesuffix("\n")


class ReportService(BaseService):
    """Month-scoped money reports."""

    def _settled_orders(self, month: ReportMonth) -> QuerySet[Order]:
        return Order.objects.filter(
            status__in=ORDER_SETTLED_STATES,
            updated_at__gte=month.start,
            updated_at__lt=month.end,
        ).order_by("updated_at", "id")

    def earnings_statement(
        self,
        provider_id: uuid.UUID | str,
        month: ReportMonth,
        actor_user_id: str,
    ) -> dict[str, Any]:
        """
        A provider's own statement.

        Raises:
            NotFoundError: provider_not_found
            PermissionDeniedError: Caller is not the provider
        """
        provider = get_provider(provider_id)
        require_provider_owner(provider, actor_user_id)

        rows = [
            {
                "order_id": str(order.id),
                "status": order.status,
                "updated_at": _isoformat(order.updated_at),
                "gross_cents": order.price_cents,
                "platform_fee_cents": order.platform_fee_cents,
                "provider_payout_cents": _payout_cents(order),
                "transfer_id": order.stripe_transfer_id,
            }
            for order in self._settled_orders(month).filter(provider=provider)
        ]
        return {
            "month": month.label,
            "providerId": str(provider.id),
            "summary": {
                "grossCents": sum(row["gross_cents"] for row in rows),
                "platformFeeCents": sum(row["platform_fee_cents"] for row in rows),
                "providerPayoutCents": sum(row["provider_payout_cents"] for row in rows),
            },
            "rows": rows,
        }

    def payout_ledger(self, month: ReportMonth) -> dict[str, Any]:
        """Platform-wide ledger for admins."""
        rows = [
            {
                "order_id": str(order.id),
                "provider_id": str(order.provider_id),
                "writer_user_id": order.writer_user_id,
                "status": order.status,
                "updated_at": _isoformat(order.updated_at),
                "gross_cents": order.price_cents,
                "platform_fee_cents": order.platform_fee_cents,
                "provider_payout_cents": _payout_cents(order),
                "transfer_id": order.stripe_transfer_id,
                "payment_intent_id": order.stripe_payment_intent_id,
            }
            for order in self._settled_orders(month)
        ]
        return {"month": month.label, "rows": rows}
