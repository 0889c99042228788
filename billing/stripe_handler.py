"""
WotanEye Stripe Billing Routes
Owner: CC2
Workstream: W2P2

POST /api/billing/checkout      - Start a Stripe Checkout subscription
GET  /api/billing/portal        - Redirect to the Stripe customer portal
POST /api/billing/webhooks      - Stripe webhook receiver
GET  /api/billing/subscription  - Current projected plan for an org
GET  /api/billing/health        - Billing module health

Webhooks handled:
- checkout.session.completed: org starts trialing the purchased plan
- customer.subscription.updated: plan or status changed
- customer.subscription.deleted: org drops back to free

A webhook is acknowledged only after its state change is stored (or it is
known to need none). Anything else answers non-2xx so Stripe redelivers.
"""

import json

import stripe
from flask import Blueprint, request, jsonify, redirect

from billing.config import BillingConfig
from billing.errors import BillingError, InvalidPlan, SignatureVerificationFailed, StoreError
from billing.events import decode_event
from billing.plans import effective_plan, is_subscription_active
from billing.projector import SubscriptionProjector
from billing.sessions import BillingSessions


def verify_webhook(payload: bytes, sig_header: str, config: BillingConfig, stripe_client=None) -> dict:
    """
    Verify a Stripe webhook signature and parse the event.

    Args:
        payload: Raw request body, exactly as received
        sig_header: Stripe-Signature header value
        config: BillingConfig holding the signing secret and tolerance
        stripe_client: Stripe SDK handle

    Returns:
        Parsed event dict

    Raises:
        SignatureVerificationFailed: header missing, signature invalid or stale, or body not JSON
    """
    client = stripe_client or stripe

    if not sig_header:
        raise SignatureVerificationFailed('Missing Stripe-Signature header')

    try:
        body = payload.decode('utf-8') if isinstance(payload, bytes) else payload
    except UnicodeDecodeError as e:
        raise SignatureVerificationFailed(f"Invalid payload: {e}") from e

    # Signature covers the exact body text, so verify before parsing
    try:
        client.WebhookSignature.verify_header(
            body, sig_header, config.webhook_secret, config.webhook_tolerance
        )
    except stripe.SignatureVerificationError as e:
        raise SignatureVerificationFailed(f"Invalid signature: {e}") from e

    try:
        event = json.loads(body)
    except ValueError as e:
        raise SignatureVerificationFailed(f"Invalid payload: {e}") from e

    if not isinstance(event, dict):
        raise SignatureVerificationFailed('Invalid payload: not an event object')
    return event


def init_billing(config: BillingConfig, projector: SubscriptionProjector, sessions: BillingSessions,
                 stripe_client=None):
    """Initialize billing routes with their collaborators."""

    billing_bp = Blueprint('billing', __name__, url_prefix='/api/billing')

    @billing_bp.route('/checkout', methods=['POST'])
    def create_checkout():
        """
        Create a Stripe Checkout session for a subscription.

        Request body:
            {"plan": "pro" | "business", "orgId": "..."}

        Returns 200:
            {"url": "https://checkout.stripe.com/..."}
        """
        data = request.get_json(silent=True) or {}
        plan = data.get('plan')
        org_id = data.get('orgId')

        if not isinstance(plan, str) or not isinstance(org_id, str) or not plan or not org_id:
            return jsonify({'error': 'Missing plan or orgId'}), 400

        try:
            url = sessions.create_checkout_session(org_id, plan)
            return jsonify({'url': url})
        except InvalidPlan as e:
            print(f"[BILLING] Rejected checkout for org {org_id}: {e.message}", flush=True)
            return jsonify({'error': e.message}), e.status_code
        except BillingError as e:
            return jsonify({'error': e.message}), e.status_code
        except stripe.StripeError as e:
            print(f"[STRIPE] Error creating checkout session: {e}", flush=True)
            return jsonify({'error': 'Internal server error'}), 500

    @billing_bp.route('/portal', methods=['GET'])
    def open_portal():
        """Redirect to a Stripe customer portal session (?orgId=...)."""
        org_id = request.args.get('orgId')
        if not org_id:
            return 'orgId is required', 400

        try:
            url = sessions.create_portal_session(org_id)
        except BillingError as e:
            return e.message, e.status_code
        except stripe.StripeError as e:
            print(f"[STRIPE] Error creating billing portal session: {e}", flush=True)
            return 'Internal server error', 500

        return redirect(url)

    @billing_bp.route('/webhooks', methods=['POST'])
    def stripe_webhook():
        """
        Handle Stripe webhook events.

        Stripe sends events to this endpoint when subscription changes occur.
        We verify the signature against the raw body and project the event.
        """
        if not config.webhook_secret:
            print("[STRIPE] WARNING: STRIPE_WEBHOOK_SECRET not configured", flush=True)
            return jsonify({'error': 'Webhook secret not configured'}), 500

        payload = request.get_data()
        sig_header = request.headers.get('Stripe-Signature')

        try:
            event = verify_webhook(payload, sig_header, config, stripe_client)
        except SignatureVerificationFailed as e:
            print(f"[STRIPE] Webhook verification failed: {e.message}", flush=True)
            return jsonify({'error': e.message}), e.status_code

        print(f"[STRIPE] Received event: {event.get('type')} ({event.get('id')})", flush=True)

        billing_event = decode_event(event, config.price_ids)
        try:
            projector.apply(billing_event)
        except BillingError as e:
            return jsonify({'error': e.message}), e.status_code

        return jsonify({'received': True})

    @billing_bp.route('/subscription', methods=['GET'])
    def get_subscription():
        """
        Get the projected subscription for an organization (?orgId=...).

        Returns 200:
            {"orgId": "...", "plan": "pro", "status": "active", "active": true}
        """
        org_id = request.args.get('orgId')
        if not org_id:
            return jsonify({'error': 'orgId is required'}), 400

        try:
            record = projector.store.get(org_id)
        except StoreError as e:
            print(f"[BILLING] Error reading subscription for org {org_id}: {e}", flush=True)
            return jsonify({'error': 'Subscription store unavailable'}), 503

        return jsonify({
            'orgId': org_id,
            'plan': record.plan if record else 'free',
            'status': record.status if record else None,
            'effectivePlan': effective_plan(record),
            'active': is_subscription_active(record)
        })

    @billing_bp.route('/health', methods=['GET'])
    def billing_health():
        """Health check for billing module."""
        return jsonify({
            'status': 'ok',
            'module': 'billing',
            'stripe_configured': bool(config.stripe_secret_key),
            'webhook_secret_configured': bool(config.webhook_secret),
            'store': projector.store.backend
        })

    return billing_bp
