"""
Customer Directory
Owner: CC2
Workstream: W2P3

Maps organizations to Stripe customers. A customer is created once per
organization; later checkouts and portal visits reuse it.
"""

import threading
from typing import Dict, Optional

import psycopg2
import stripe

from billing import db as billing_db
from billing.errors import CustomerLookupFailed, StoreError
from billing.locks import OrgLockPool


class CustomerStore:
    """Organization ID -> Stripe customer ID."""

    backend = 'abstract'

    def get(self, org_id: str) -> Optional[str]:
        raise NotImplementedError

    def put_if_absent(self, org_id: str, customer_id: str) -> str:
        """Record customer_id unless one exists. Returns the ID on record."""
        raise NotImplementedError


class InMemoryCustomerStore(CustomerStore):

    backend = 'memory'

    def __init__(self):
        self._customers: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, org_id):
        with self._lock:
            return self._customers.get(org_id)

    def put_if_absent(self, org_id, customer_id):
        with self._lock:
            return self._customers.setdefault(org_id, customer_id)


class PostgresCustomerStore(CustomerStore):

    backend = 'postgres'

    def __init__(self, get_db, get_cursor):
        self.get_db = get_db
        self.get_cursor = get_cursor

    def get(self, org_id):
        try:
            cur = self.get_cursor()
            try:
                return billing_db.get_customer_id(cur, org_id)
            finally:
                cur.close()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

    def put_if_absent(self, org_id, customer_id):
        try:
            db = self.get_db()
            cur = self.get_cursor()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

        try:
            stored = billing_db.insert_customer_id(cur, org_id, customer_id)
            db.commit()
            return stored
        except psycopg2.Error as e:
            try:
                db.rollback()
            except psycopg2.Error:
                pass  # connection already gone
            raise StoreError(str(e)) from e
        finally:
            cur.close()


class CustomerDirectory:
    """
    Lookup-or-create for Stripe customers.

    Args:
        store: CustomerStore holding the org -> customer mapping
        stripe_client: Stripe SDK handle (the stripe module, or a mock in tests)
    """

    def __init__(self, store: CustomerStore, stripe_client=None):
        self.store = store
        self.stripe = stripe_client or stripe
        self.locks = OrgLockPool()

    def resolve_customer(self, org_id: str) -> str:
        """
        Get the Stripe customer for an organization, creating it on first use.

        The create call carries an idempotency key derived from org_id, so
        a retry after a lost response returns the same customer.

        Args:
            org_id: Organization identifier

        Returns:
            Stripe customer ID (cus_xxx)

        Raises:
            CustomerLookupFailed: store or Stripe call failed
        """
        with self.locks.lock_for(org_id):
            try:
                customer_id = self.store.get(org_id)
            except StoreError as e:
                print(f"[STRIPE] Customer store read failed for org {org_id}: {e}", flush=True)
                raise CustomerLookupFailed(org_id, str(e)) from e

            if customer_id:
                return customer_id

            try:
                customer = self.stripe.Customer.create(
                    description=f"Customer for org {org_id}",
                    metadata={'orgId': org_id},
                    idempotency_key=f"org-customer-{org_id}"
                )
            except stripe.StripeError as e:
                print(f"[STRIPE] Error creating customer for org {org_id}: {e}", flush=True)
                raise CustomerLookupFailed(org_id, str(e)) from e

            try:
                stored = self.store.put_if_absent(org_id, customer['id'])
            except StoreError as e:
                print(f"[STRIPE] Customer store write failed for org {org_id}: {e}", flush=True)
                raise CustomerLookupFailed(org_id, str(e)) from e

            print(f"[STRIPE] Created customer {stored} for org {org_id}", flush=True)
            return stored
