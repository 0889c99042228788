"""
Stripe Checkout and Billing Portal Sessions
Owner: CC2
Workstream: W2P3

Both sessions are hosted by Stripe; we only hand the front-end a URL.
"""

import stripe

from billing.config import BillingConfig
from billing.customers import CustomerDirectory
from billing.plans import resolve_price_id


class BillingSessions:
    """
    Creates Stripe-hosted checkout and portal sessions for organizations.

    Args:
        config: BillingConfig (price IDs, redirect URLs, trial length)
        customers: CustomerDirectory resolving org -> Stripe customer
        stripe_client: Stripe SDK handle (the stripe module, or a mock in tests)
    """

    def __init__(self, config: BillingConfig, customers: CustomerDirectory, stripe_client=None):
        self.config = config
        self.customers = customers
        self.stripe = stripe_client or stripe

    def create_checkout_session(self, org_id: str, plan: str) -> str:
        """
        Start a subscription checkout with a trial.

        Args:
            org_id: Organization identifier
            plan: Paid plan ID ('pro', 'business')

        Returns:
            Checkout session URL

        Raises:
            InvalidPlan: plan has no price (raised before any Stripe call)
            CustomerLookupFailed: customer could not be resolved
            stripe.StripeError: session creation failed
        """
        price_id = resolve_price_id(plan, self.config.price_ids)
        customer_id = self.customers.resolve_customer(org_id)

        metadata = {'orgId': org_id, 'plan': plan}
        # Collect a card up front even though the first period is a trial
        session = self.stripe.checkout.Session.create(
            mode='subscription',
            customer=customer_id,
            client_reference_id=org_id,
            payment_method_collection='always',
            line_items=[{'price': price_id, 'quantity': 1}],
            subscription_data={
                'trial_period_days': self.config.trial_period_days,
                'metadata': metadata,
            },
            metadata=metadata,
            success_url=self.config.success_url,
            cancel_url=self.config.cancel_url,
        )

        print(f"[STRIPE] Checkout session {session['id']} created for org {org_id}: {plan}", flush=True)
        return session['url']

    def create_portal_session(self, org_id: str) -> str:
        """
        Open the Stripe customer portal for an organization.

        Args:
            org_id: Organization identifier

        Returns:
            Portal session URL

        Raises:
            CustomerLookupFailed: customer could not be resolved
            stripe.StripeError: session creation failed
        """
        customer_id = self.customers.resolve_customer(org_id)
        portal_session = self.stripe.billing_portal.Session.create(
            customer=customer_id,
            return_url=self.config.portal_return_url,
        )
        print(f"[STRIPE] Portal session created for org {org_id}", flush=True)
        return portal_session['url']
