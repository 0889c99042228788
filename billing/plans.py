"""
WotanEye Billing Plan Definitions
Owner: CC2
Workstream: W2P1

Plan tiers:
- Free: No subscription, no payment required
- Pro: Single workspace, monthly subscription
- Business: Larger teams, monthly subscription

Stripe price IDs are not stored here; they come from BillingConfig.price_ids
so test-mode and live-mode deployments share one catalogue.
"""

from typing import Optional, Dict, Any

from billing.errors import InvalidPlan


PLANS: Dict[str, Dict[str, Any]] = {
    'free': {
        'id': 'free',
        'name': 'Free',
        'description': 'Explore WotanEye with a single monitored site',
        'price': 0,  # cents
        'interval': None,  # no billing
        'features': [
            '1 monitored site',
            'Daily reports',
            'Community support'
        ]
    },
    'pro': {
        'id': 'pro',
        'name': 'Pro',
        'description': 'For operators who need continuous coverage',
        'price': 4900,  # $49/month in cents
        'interval': 'month',
        'features': [
            '10 monitored sites',
            'Real-time alerts',
            'Priority support',
            'API access'
        ]
    },
    'business': {
        'id': 'business',
        'name': 'Business',
        'description': 'For organizations running WotanEye across teams',
        'price': 19900,  # $199/month in cents
        'interval': 'month',
        'features': [
            'Unlimited monitored sites',
            'Real-time alerts',
            'SSO integration',
            'Dedicated support'
        ]
    }
}

# Statuses that grant the paid plan's entitlements
ACTIVE_STATUSES = ('active', 'trialing')


def get_plan(plan_id: str) -> Optional[Dict[str, Any]]:
    """
    Get a plan by ID.

    Args:
        plan_id: The plan identifier ('free', 'pro', 'business')

    Returns:
        Plan dictionary or None if not found
    """
    return PLANS.get(plan_id)


def resolve_price_id(plan_id: str, price_ids: Dict[str, str]) -> str:
    """
    Map a paid plan to its Stripe price ID.

    Args:
        plan_id: The plan identifier
        price_ids: Plan ID to Stripe price ID mapping

    Returns:
        Stripe price ID

    Raises:
        InvalidPlan: plan has no price (unknown plans and 'free')
    """
    price_id = price_ids.get(plan_id) if isinstance(plan_id, str) else None
    if not price_id:
        raise InvalidPlan(plan_id)
    return price_id


def get_plan_by_stripe_price(stripe_price_id: str, price_ids: Dict[str, str]) -> Optional[str]:
    """
    Look up a plan ID by its Stripe price ID.

    Args:
        stripe_price_id: The Stripe price ID
        price_ids: Plan ID to Stripe price ID mapping

    Returns:
        Plan ID or None if not found
    """
    for plan_id, price_id in price_ids.items():
        if price_id == stripe_price_id:
            return plan_id
    return None


def is_subscription_active(record) -> bool:
    """Check if a subscription record grants paid entitlements."""
    if record is None:
        return False
    return record.status in ACTIVE_STATUSES


def effective_plan(record) -> str:
    """
    Get the plan an organization is entitled to right now.

    Args:
        record: SubscriptionRecord or None

    Returns:
        Plan ID ('free', 'pro', 'business')
    """
    if is_subscription_active(record):
        return record.plan
    return 'free'
