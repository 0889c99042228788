"""
WotanEye Billing Module
Owner: CC2
Workstream: W2 (Billing & Stripe)

This module handles:
- Plan definitions and price mapping
- Stripe Checkout and customer portal sessions
- Webhook-driven subscription state per organization
"""

from billing.config import BillingConfig
from billing.plans import PLANS, get_plan, resolve_price_id, effective_plan, is_subscription_active
from billing.errors import (
    BillingError,
    InvalidPlan,
    CustomerLookupFailed,
    SignatureVerificationFailed,
    StoreUnavailable
)
from billing.store import SubscriptionRecord, InMemorySubscriptionStore, PostgresSubscriptionStore
from billing.projector import SubscriptionProjector

__all__ = [
    'BillingConfig', 'PLANS', 'get_plan', 'resolve_price_id', 'effective_plan',
    'is_subscription_active', 'BillingError', 'InvalidPlan', 'CustomerLookupFailed',
    'SignatureVerificationFailed', 'StoreUnavailable', 'SubscriptionRecord',
    'InMemorySubscriptionStore', 'PostgresSubscriptionStore', 'SubscriptionProjector'
]
