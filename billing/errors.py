"""
Billing Errors
Owner: CC2
Workstream: W2P2

Every error the billing module surfaces over HTTP carries the status code
the blueprint answers with.
"""


class BillingError(Exception):
    """Base class for billing failures."""

    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidPlan(BillingError):
    """Plan identifier is not in the paid-plan price mapping."""

    status_code = 400

    def __init__(self, plan_id):
        super().__init__(f"Invalid plan: {plan_id}")
        self.plan_id = plan_id


class CustomerLookupFailed(BillingError):
    """Customer Directory could not resolve a Stripe customer. Safe to retry."""

    status_code = 502

    def __init__(self, org_id: str, reason: str = None):
        message = f"Customer lookup failed for org {org_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.org_id = org_id


class SignatureVerificationFailed(BillingError):
    """Webhook payload failed authenticity checks. Never acknowledged."""

    status_code = 400


class StoreUnavailable(BillingError):
    """Subscription state could not be read or written. Never acknowledged."""

    status_code = 503

    def __init__(self, org_id: str, reason: str = None):
        message = f"Subscription store unavailable for org {org_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.org_id = org_id


class StoreError(Exception):
    """Raised by store backends. Callers convert it before it reaches HTTP."""
