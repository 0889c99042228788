"""
Subscription State Projector
Owner: CC2
Workstream: W2P2

Turns the Stripe webhook stream into "what plan is this organization on
right now". Stripe delivers at least once and in no guaranteed order, so:

- Every write is a full overwrite built from one event. Re-delivering the
  same event writes the same record.
- Events older than the stored record (by Stripe's `created` timestamp)
  are skipped. Ties and untimestamped events fall back to arrival order.
- Events for one organization are serialized through a fixed lock pool;
  different organizations only contend when they share a slot.
"""

from billing.errors import StoreError, StoreUnavailable
from billing.events import BillingEvent
from billing.locks import OrgLockPool
from billing.store import SubscriptionStore

APPLIED = 'applied'
IGNORED = 'ignored'
STALE = 'stale'


class SubscriptionProjector:

    def __init__(self, store: SubscriptionStore):
        self.store = store
        self.locks = OrgLockPool()

    def apply(self, event: BillingEvent) -> str:
        """
        Apply one verified billing event to the store.

        Args:
            event: Decoded BillingEvent

        Returns:
            'applied', 'ignored' or 'stale'

        Raises:
            StoreUnavailable: the store read or write failed; the stored
                record is unchanged and the event must not be acknowledged
        """
        record = event.to_record()
        if record is None:
            print(f"[BILLING] Ignored {event.event_type}: {event.reason}", flush=True)
            return IGNORED

        org_id = event.org_id
        with self.locks.lock_for(org_id):
            try:
                current = self.store.get(org_id)
                if record.is_older_than(current):
                    written = False
                else:
                    written = self.store.put(org_id, record)
            except StoreError as e:
                print(f"[BILLING] Store unavailable for org {org_id}: {e}", flush=True)
                raise StoreUnavailable(org_id, str(e)) from e

        if not written:
            print(f"[BILLING] Skipped stale {type(event).__name__} for org {org_id} "
                  f"(event {event.event_id} at {event.created})", flush=True)
            return STALE

        print(f"[BILLING] Org {org_id} now {record.plan} ({record.status})", flush=True)
        return APPLIED
