"""
Subscription State Store
Owner: CC2
Workstream: W2P2

Key-value storage for subscription records, keyed by organization ID.
An absent record means the organization is on the free plan.

Writes are conditional on event order: a record built from an older Stripe
event never replaces one built from a newer event. Records without an event
timestamp fall back to delivery order.
"""

import threading
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

import psycopg2

from billing import db as billing_db
from billing.errors import StoreError


@dataclass(frozen=True)
class SubscriptionRecord:
    plan: str
    status: str
    event_id: Optional[str] = None
    event_created: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def is_older_than(self, other: Optional['SubscriptionRecord']) -> bool:
        """True when both records carry a timestamp and this one is strictly older."""
        if other is None or self.event_created is None or other.event_created is None:
            return False
        return self.event_created < other.event_created


class SubscriptionStore:
    """Interface the projector reads and writes through."""

    backend = 'abstract'

    def get(self, org_id: str) -> Optional[SubscriptionRecord]:
        raise NotImplementedError

    def put(self, org_id: str, record: SubscriptionRecord) -> bool:
        """Write unless the stored record is newer. Returns whether it wrote."""
        raise NotImplementedError


class InMemorySubscriptionStore(SubscriptionStore):
    """Process-local store. State is lost on restart."""

    backend = 'memory'

    def __init__(self):
        self._records: Dict[str, SubscriptionRecord] = {}
        self._lock = threading.Lock()

    def get(self, org_id):
        with self._lock:
            return self._records.get(org_id)

    def put(self, org_id, record):
        with self._lock:
            if record.is_older_than(self._records.get(org_id)):
                return False
            self._records[org_id] = record
            return True


class PostgresSubscriptionStore(SubscriptionStore):
    """
    Store backed by the billing_subscriptions table.

    Args:
        get_db: Function returning the request's connection
        get_cursor: Function returning a RealDictCursor on that connection
    """

    backend = 'postgres'

    def __init__(self, get_db, get_cursor):
        self.get_db = get_db
        self.get_cursor = get_cursor

    def get(self, org_id):
        try:
            cur = self.get_cursor()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

        try:
            row = billing_db.get_subscription(cur, org_id)
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e
        finally:
            cur.close()

        if not row:
            return None
        return SubscriptionRecord(
            plan=row['plan'],
            status=row['status'],
            event_id=row.get('event_id'),
            event_created=row.get('event_created')
        )

    def put(self, org_id, record):
        try:
            db = self.get_db()
            cur = self.get_cursor()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

        try:
            written = billing_db.put_subscription(
                cur, org_id, record.plan, record.status,
                record.event_id, record.event_created
            )
            db.commit()
            return written
        except psycopg2.Error as e:
            try:
                db.rollback()
            except psycopg2.Error:
                pass  # connection already gone
            raise StoreError(str(e)) from e
        finally:
            cur.close()
