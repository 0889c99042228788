import hashlib
import hmac
import json
import sys
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from flask import Flask

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from billing.config import BillingConfig  # noqa: E402
from billing.customers import CustomerDirectory, InMemoryCustomerStore  # noqa: E402
from billing.projector import SubscriptionProjector  # noqa: E402
from billing.sessions import BillingSessions  # noqa: E402
from billing.store import InMemorySubscriptionStore  # noqa: E402
from billing.stripe_handler import init_billing  # noqa: E402

WEBHOOK_SECRET = 'whsec_test_secret'


@pytest.fixture
def config():
    return BillingConfig(
        stripe_secret_key='sk_test_123',
        webhook_secret=WEBHOOK_SECRET,
        price_ids={'pro': 'price_pro_monthly', 'business': 'price_business_monthly'},
        app_url='https://app.example.com',
    )


@pytest.fixture
def store():
    return InMemorySubscriptionStore()


@pytest.fixture
def projector(store):
    return SubscriptionProjector(store)


@pytest.fixture
def mock_stripe():
    """Stands in for the stripe module on outbound calls."""
    client = MagicMock()
    client.Customer.create.return_value = {'id': 'cus_123'}
    client.checkout.Session.create.return_value = {
        'id': 'cs_test_1',
        'url': 'https://checkout.stripe.com/c/pay/cs_test_1',
    }
    client.billing_portal.Session.create.return_value = {
        'id': 'bps_1',
        'url': 'https://billing.stripe.com/p/session/bps_1',
    }
    return client


@pytest.fixture
def customer_store():
    return InMemoryCustomerStore()


@pytest.fixture
def customers(customer_store, mock_stripe):
    return CustomerDirectory(customer_store, mock_stripe)


@pytest.fixture
def sessions(config, customers, mock_stripe):
    return BillingSessions(config, customers, mock_stripe)


@pytest.fixture
def app(config, projector, sessions):
    # Webhook verification goes through the real stripe SDK
    flask_app = Flask(__name__)
    flask_app.register_blueprint(init_billing(config, projector, sessions))
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def stripe_event(event_type, obj, event_id='evt_1', created=1700000000):
    """Build a Stripe event payload dict."""
    return {
        'id': event_id,
        'object': 'event',
        'type': event_type,
        'created': created,
        'data': {'object': obj},
    }


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode('utf-8')
    signature = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def encode_event(event) -> bytes:
    return json.dumps(event).encode('utf-8')
