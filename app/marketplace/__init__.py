"""
Coverage marketplace app.

Writers order script coverage from verified providers; payment is held in
escrow until the writer accepts the delivery, the SLA maintenance job
auto-completes it, or an admin resolves a dispute.

This app handles:
- Provider signup, payment onboarding and admin review
- Service catalog (tiers, prices, turnaround)
- Order lifecycle state machine with escrow payment orchestration
- Deliveries, reviews and provider ratings
- Disputes with an append-only audit trail
- SLA maintenance sweep (Celery beat)
- Earnings statements and the platform payout ledger

Usage:
    from marketplace.gateways import get_payment_gateway
    from marketplace.services import OrderService

    orders = OrderService(gateway=get_payment_gateway())
    order, client_secret = orders.place(writer_user_id, service_id, script_id="s1")
"""
