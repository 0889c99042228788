#!/usr/bin/env python3
"""
WotanEye Billing API
Stripe checkout, customer portal and webhook-driven subscription state.
PostgreSQL when DATABASE_URL is set, in-memory otherwise.
"""

import os
import sys

import psycopg2
import psycopg2.extras
import stripe
from flask import Flask, jsonify, g
from flask_cors import CORS

from billing.config import BillingConfig
from billing.customers import CustomerDirectory, InMemoryCustomerStore, PostgresCustomerStore
from billing.projector import SubscriptionProjector
from billing.sessions import BillingSessions
from billing.store import InMemorySubscriptionStore, PostgresSubscriptionStore
from billing.stripe_handler import init_billing

app = Flask(__name__)
CORS(app)

config = BillingConfig.from_env()

# Initialize Stripe with secret key
stripe.api_key = config.stripe_secret_key
stripe.api_version = config.api_version

# Database URL from environment (Railway provides this)
DATABASE_URL = os.environ.get('DATABASE_URL')

# Startup logging for debugging
print(f"[STARTUP] DATABASE_URL set: {bool(DATABASE_URL)}", file=sys.stderr)
print(f"[STARTUP] Stripe configured: {bool(config.stripe_secret_key)}, "
      f"webhook secret configured: {bool(config.webhook_secret)}", file=sys.stderr)
if DATABASE_URL:
    # Log host only (hide credentials)
    from urllib.parse import urlparse
    parsed = urlparse(DATABASE_URL)
    print(f"[STARTUP] Database host: {parsed.hostname}:{parsed.port}", file=sys.stderr)


def get_db():
    """Get database connection for current request context."""
    if 'db' not in g:
        if not DATABASE_URL:
            raise RuntimeError("DATABASE_URL environment variable not set")
        # Add connection timeout to prevent hanging
        g.db = psycopg2.connect(DATABASE_URL, connect_timeout=10)
        g.db.autocommit = False
    return g.db


def get_cursor():
    """Get a cursor with dict-like row access."""
    db = get_db()
    return db.cursor(cursor_factory=psycopg2.extras.RealDictCursor)


@app.teardown_appcontext
def close_db(exception):
    """Close database connection at end of request."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


# =============================================================================
# BILLING & STRIPE WEBHOOKS
# =============================================================================

if DATABASE_URL:
    subscription_store = PostgresSubscriptionStore(get_db, get_cursor)
    customer_store = PostgresCustomerStore(get_db, get_cursor)
else:
    print("[STARTUP] WARNING: no DATABASE_URL, subscription state is in-memory only", file=sys.stderr)
    subscription_store = InMemorySubscriptionStore()
    customer_store = InMemoryCustomerStore()

projector = SubscriptionProjector(subscription_store)
billing_sessions = BillingSessions(config, CustomerDirectory(customer_store))

billing_bp = init_billing(config, projector, billing_sessions)
app.register_blueprint(billing_bp)


@app.route('/health', methods=['GET'])
def health():
    """Process health check."""
    return jsonify({'status': 'ok', 'store': subscription_store.backend})


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 3000))
    print(f"[STARTUP] Stripe server listening on port {port}", file=sys.stderr)
    app.run(host='0.0.0.0', port=port, debug=False)
