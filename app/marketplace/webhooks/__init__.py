"""
Stripe webhook processing for the coverage marketplace.

Modules:
    handlers: Handler registry and per-event handlers
    views: Signature-verifying HTTP endpoint
"""
