"""
Billing Event Decoding
Owner: CC2
Workstream: W2P2

Maps verified Stripe webhook events onto the subscription lifecycle:
- checkout.session.completed: CheckoutCompleted
- customer.subscription.updated: SubscriptionUpdated
- customer.subscription.deleted: SubscriptionDeleted

Every other event type decodes to IgnoredEvent. Stripe adds event types
without notice, so an unrecognized type is never an error.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any, Union

from billing.plans import get_plan_by_stripe_price
from billing.store import SubscriptionRecord


@dataclass(frozen=True)
class CheckoutCompleted:
    org_id: str
    plan: str
    event_id: Optional[str] = None
    created: Optional[int] = None

    def to_record(self) -> SubscriptionRecord:
        # New checkouts always start on the trial
        return SubscriptionRecord(self.plan, 'trialing', self.event_id, self.created)


@dataclass(frozen=True)
class SubscriptionUpdated:
    org_id: str
    plan: str
    status: str
    event_id: Optional[str] = None
    created: Optional[int] = None

    def to_record(self) -> SubscriptionRecord:
        return SubscriptionRecord(self.plan, self.status, self.event_id, self.created)


@dataclass(frozen=True)
class SubscriptionDeleted:
    org_id: str
    event_id: Optional[str] = None
    created: Optional[int] = None

    def to_record(self) -> SubscriptionRecord:
        return SubscriptionRecord('free', 'canceled', self.event_id, self.created)


@dataclass(frozen=True)
class IgnoredEvent:
    event_type: str
    reason: str = 'unhandled event type'
    event_id: Optional[str] = None
    created: Optional[int] = None

    org_id = None

    def to_record(self) -> None:
        return None


BillingEvent = Union[CheckoutCompleted, SubscriptionUpdated, SubscriptionDeleted, IgnoredEvent]

HANDLED_TYPES = (
    'checkout.session.completed',
    'customer.subscription.updated',
    'customer.subscription.deleted',
)


def _dict(value) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _string(value) -> Optional[str]:
    # Metadata values are strings in Stripe; anything else is unusable
    return value if isinstance(value, str) and value else None


def _metadata(obj: Dict[str, Any]) -> Dict[str, Any]:
    return _dict(obj.get('metadata'))


def _price_id(subscription: Dict[str, Any]) -> Optional[str]:
    """First line item's price ID, if the payload carries one."""
    items = _dict(subscription.get('items')).get('data')
    if not isinstance(items, list) or not items:
        return None
    price = _dict(_dict(items[0]).get('price'))
    return _string(price.get('id'))


def _decode_checkout(session, event_id, created):
    metadata = _metadata(session)
    org_id = _string(metadata.get('orgId')) or _string(session.get('client_reference_id'))
    plan = _string(metadata.get('plan'))

    if not org_id or not plan:
        return IgnoredEvent('checkout.session.completed', 'missing orgId or plan metadata', event_id, created)

    return CheckoutCompleted(org_id=org_id, plan=plan, event_id=event_id, created=created)


def _decode_subscription_updated(subscription, price_ids, event_id, created):
    metadata = _metadata(subscription)
    org_id = _string(metadata.get('orgId'))
    plan = _string(metadata.get('plan'))
    status = _string(subscription.get('status'))

    if not plan:
        price_id = _price_id(subscription)
        if price_id:
            plan = get_plan_by_stripe_price(price_id, price_ids)

    if not org_id or not plan or not status:
        return IgnoredEvent('customer.subscription.updated', 'missing orgId, plan or status', event_id, created)

    return SubscriptionUpdated(org_id=org_id, plan=plan, status=status, event_id=event_id, created=created)


def _decode_subscription_deleted(subscription, event_id, created):
    org_id = _string(_metadata(subscription).get('orgId'))
    if not org_id:
        return IgnoredEvent('customer.subscription.deleted', 'missing orgId metadata', event_id, created)
    return SubscriptionDeleted(org_id=org_id, event_id=event_id, created=created)


def decode_event(payload: Dict[str, Any], price_ids: Dict[str, str]) -> BillingEvent:
    """
    Decode a verified Stripe event into a BillingEvent.

    Payloads whose data, object or metadata have the wrong shape decode to
    IgnoredEvent: a redelivery would carry the same body.

    Args:
        payload: Parsed Stripe event JSON
        price_ids: Plan ID to Stripe price ID mapping, for events without plan metadata

    Returns:
        One of CheckoutCompleted, SubscriptionUpdated, SubscriptionDeleted, IgnoredEvent
    """
    event_type = _string(payload.get('type')) or 'unknown'
    event_id = _string(payload.get('id'))
    created = payload.get('created')
    if isinstance(created, bool) or not isinstance(created, int):
        created = None

    obj = _dict(payload.get('data')).get('object')
    if event_type in HANDLED_TYPES and not isinstance(obj, dict):
        return IgnoredEvent(event_type, 'malformed event object', event_id, created)

    if event_type == 'checkout.session.completed':
        return _decode_checkout(obj, event_id, created)
    elif event_type == 'customer.subscription.updated':
        return _decode_subscription_updated(obj, price_ids, event_id, created)
    elif event_type == 'customer.subscription.deleted':
        return _decode_subscription_deleted(obj, event_id, created)

    return IgnoredEvent(event_type, event_id=event_id, created=created)
