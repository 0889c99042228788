"""
Billing Database Functions
Owner: CC2
Workstream: W2P2

Database operations for subscription state and Stripe customer mapping.
All functions take a RealDictCursor; the caller owns the transaction.
"""

from typing import Optional, Dict, Any


SCHEMA_STATEMENTS = [
    ('Create billing_subscriptions table', '''
CREATE TABLE IF NOT EXISTS billing_subscriptions (
  org_id VARCHAR(255) PRIMARY KEY,
  plan VARCHAR(50) NOT NULL,
  status VARCHAR(50) NOT NULL,
  event_id VARCHAR(255),
  event_created BIGINT,
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW()
)'''),

    ('Create billing_customers table', '''
CREATE TABLE IF NOT EXISTS billing_customers (
  org_id VARCHAR(255) PRIMARY KEY,
  stripe_customer_id VARCHAR(255) NOT NULL UNIQUE,
  created_at TIMESTAMPTZ DEFAULT NOW()
)'''),
]


def get_subscription(cur, org_id: str) -> Optional[Dict[str, Any]]:
    """
    Get subscription state for an organization.

    Args:
        cur: Database cursor
        org_id: Organization identifier

    Returns:
        Subscription dict or None
    """
    cur.execute(
        '''SELECT org_id, plan, status, event_id, event_created
           FROM billing_subscriptions WHERE org_id = %s''',
        (org_id,)
    )
    row = cur.fetchone()
    return dict(row) if row else None


def put_subscription(
    cur,
    org_id: str,
    plan: str,
    status: str,
    event_id: Optional[str] = None,
    event_created: Optional[int] = None
) -> bool:
    """
    Upsert subscription state unless the stored row comes from a newer event.

    The insert and the ordering check are one statement, so concurrent
    writers for the same org_id cannot interleave.

    Args:
        cur: Database cursor
        org_id: Organization identifier
        plan: Plan ID
        status: Stripe subscription status
        event_id: Stripe event ID (evt_xxx)
        event_created: Stripe event creation time (epoch seconds)

    Returns:
        True if the row was written, False if the stored row is newer
    """
    cur.execute(
        '''INSERT INTO billing_subscriptions
           (org_id, plan, status, event_id, event_created)
           VALUES (%s, %s, %s, %s, %s)
           ON CONFLICT (org_id) DO UPDATE SET
               plan = EXCLUDED.plan,
               status = EXCLUDED.status,
               event_id = EXCLUDED.event_id,
               event_created = EXCLUDED.event_created,
               updated_at = NOW()
           WHERE billing_subscriptions.event_created IS NULL
              OR EXCLUDED.event_created IS NULL
              OR EXCLUDED.event_created >= billing_subscriptions.event_created
           RETURNING org_id''',
        (org_id, plan, status, event_id, event_created)
    )
    return cur.fetchone() is not None


def get_customer_id(cur, org_id: str) -> Optional[str]:
    """
    Get the Stripe customer ID recorded for an organization.

    Args:
        cur: Database cursor
        org_id: Organization identifier

    Returns:
        Stripe customer ID (cus_xxx) or None
    """
    cur.execute(
        'SELECT stripe_customer_id FROM billing_customers WHERE org_id = %s',
        (org_id,)
    )
    row = cur.fetchone()
    return row['stripe_customer_id'] if row else None


def insert_customer_id(cur, org_id: str, stripe_customer_id: str) -> str:
    """
    Record a Stripe customer for an organization if none is recorded yet.

    Args:
        cur: Database cursor
        org_id: Organization identifier
        stripe_customer_id: Stripe customer ID (cus_xxx)

    Returns:
        The customer ID now on record (an earlier writer wins)
    """
    cur.execute(
        '''INSERT INTO billing_customers (org_id, stripe_customer_id)
           VALUES (%s, %s)
           ON CONFLICT (org_id) DO NOTHING''',
        (org_id, stripe_customer_id)
    )
    return get_customer_id(cur, org_id)
