"""Tests for checkout/portal session creation and the customer directory."""

import pytest
import stripe

from billing.customers import CustomerDirectory
from billing.locks import DEFAULT_POOL_SIZE
from billing.errors import CustomerLookupFailed, InvalidPlan, StoreError


class BrokenCustomerStore:
    backend = 'broken'

    def get(self, org_id):
        raise StoreError('connection refused')

    def put_if_absent(self, org_id, customer_id):
        raise StoreError('connection refused')


class TestCheckoutSession:

    def test_creates_subscription_session_with_trial(self, sessions, mock_stripe):
        url = sessions.create_checkout_session('acme', 'pro')

        assert url == 'https://checkout.stripe.com/c/pay/cs_test_1'
        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs['mode'] == 'subscription'
        assert kwargs['customer'] == 'cus_123'
        assert kwargs['client_reference_id'] == 'acme'
        assert kwargs['payment_method_collection'] == 'always'
        assert kwargs['line_items'] == [{'price': 'price_pro_monthly', 'quantity': 1}]
        assert kwargs['subscription_data'] == {
            'trial_period_days': 14,
            'metadata': {'orgId': 'acme', 'plan': 'pro'},
        }
        assert kwargs['metadata'] == {'orgId': 'acme', 'plan': 'pro'}
        assert kwargs['success_url'] == 'https://app.example.com/billing/success?session_id={CHECKOUT_SESSION_ID}'
        assert kwargs['cancel_url'] == 'https://app.example.com/pricing?canceled=1'

    def test_business_plan_uses_business_price(self, sessions, mock_stripe):
        sessions.create_checkout_session('acme', 'business')

        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs['line_items'][0]['price'] == 'price_business_monthly'

    @pytest.mark.parametrize('plan', ['enterprise', 'free', ''])
    def test_unknown_plan_fails_without_vendor_call(self, sessions, mock_stripe, plan):
        """Scenario D: plans outside the price mapping never reach Stripe."""
        with pytest.raises(InvalidPlan):
            sessions.create_checkout_session('acme', plan)

        mock_stripe.Customer.create.assert_not_called()
        mock_stripe.checkout.Session.create.assert_not_called()

    def test_stripe_error_propagates(self, sessions, mock_stripe):
        mock_stripe.checkout.Session.create.side_effect = stripe.StripeError('card_declined')

        with pytest.raises(stripe.StripeError):
            sessions.create_checkout_session('acme', 'pro')


class TestPortalSession:

    def test_returns_portal_url(self, sessions, mock_stripe):
        url = sessions.create_portal_session('acme')

        assert url == 'https://billing.stripe.com/p/session/bps_1'
        mock_stripe.billing_portal.Session.create.assert_called_once_with(
            customer='cus_123',
            return_url='https://app.example.com/settings/billing',
        )

    def test_customer_failure_surfaces(self, config, mock_stripe):
        from billing.sessions import BillingSessions

        sessions = BillingSessions(config, CustomerDirectory(BrokenCustomerStore(), mock_stripe), mock_stripe)

        with pytest.raises(CustomerLookupFailed):
            sessions.create_portal_session('acme')
        mock_stripe.billing_portal.Session.create.assert_not_called()


class TestCustomerDirectory:

    def test_creates_customer_once_per_org(self, customers, mock_stripe):
        first = customers.resolve_customer('acme')
        second = customers.resolve_customer('acme')

        assert first == second == 'cus_123'
        mock_stripe.Customer.create.assert_called_once_with(
            description='Customer for org acme',
            metadata={'orgId': 'acme'},
            idempotency_key='org-customer-acme',
        )

    def test_reuses_stored_customer(self, customers, customer_store, mock_stripe):
        customer_store.put_if_absent('acme', 'cus_existing')

        assert customers.resolve_customer('acme') == 'cus_existing'
        mock_stripe.Customer.create.assert_not_called()

    def test_distinct_orgs_get_distinct_keys(self, customers, mock_stripe):
        mock_stripe.Customer.create.side_effect = [{'id': 'cus_a'}, {'id': 'cus_b'}]

        assert customers.resolve_customer('acme') == 'cus_a'
        assert customers.resolve_customer('globex') == 'cus_b'

    def test_lock_count_is_bounded(self, customers, customer_store, mock_stripe):
        mock_stripe.Customer.create.side_effect = [{'id': f"cus_{i}"} for i in range(1000)]

        for i in range(1000):
            customers.resolve_customer(f"org-{i}")

        assert len(customers.locks) == DEFAULT_POOL_SIZE
        assert customer_store.get('org-999') == 'cus_999'

    def test_stripe_failure_raises_lookup_failed(self, customers, mock_stripe):
        mock_stripe.Customer.create.side_effect = stripe.APIConnectionError('network down')

        with pytest.raises(CustomerLookupFailed) as exc_info:
            customers.resolve_customer('acme')
        assert exc_info.value.status_code == 502

    def test_store_failure_raises_lookup_failed(self, mock_stripe):
        directory = CustomerDirectory(BrokenCustomerStore(), mock_stripe)

        with pytest.raises(CustomerLookupFailed):
            directory.resolve_customer('acme')
        mock_stripe.Customer.create.assert_not_called()
