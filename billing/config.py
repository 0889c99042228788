"""
Billing Configuration
Owner: CC2
Workstream: W2P1

Everything is read from the environment (set in Railway). Price IDs fall
back to Stripe test-mode placeholders so local runs work without secrets.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional


DEFAULT_API_VERSION = '2022-11-15'
DEFAULT_APP_URL = 'http://localhost:3000'
DEFAULT_TRIAL_DAYS = 14
DEFAULT_WEBHOOK_TOLERANCE = 300  # seconds


@dataclass
class BillingConfig:
    stripe_secret_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    price_ids: Dict[str, str] = field(default_factory=lambda: {
        'pro': 'price_test_pro',
        'business': 'price_test_business',
    })
    api_version: str = DEFAULT_API_VERSION
    app_url: str = DEFAULT_APP_URL
    trial_period_days: int = DEFAULT_TRIAL_DAYS
    webhook_tolerance: int = DEFAULT_WEBHOOK_TOLERANCE

    @classmethod
    def from_env(cls, environ=None) -> 'BillingConfig':
        """
        Build config from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            BillingConfig
        """
        env = os.environ if environ is None else environ
        return cls(
            stripe_secret_key=env.get('STRIPE_SECRET_KEY') or None,
            webhook_secret=env.get('STRIPE_WEBHOOK_SECRET') or None,
            price_ids={
                'pro': env.get('STRIPE_PRICE_PRO_MONTHLY') or 'price_test_pro',
                'business': env.get('STRIPE_PRICE_BUSINESS_MONTHLY') or 'price_test_business',
            },
            api_version=env.get('STRIPE_API_VERSION') or DEFAULT_API_VERSION,
            app_url=(env.get('APP_URL') or DEFAULT_APP_URL).rstrip('/'),
            trial_period_days=int(env.get('BILLING_TRIAL_DAYS') or DEFAULT_TRIAL_DAYS),
            webhook_tolerance=int(env.get('STRIPE_WEBHOOK_TOLERANCE') or DEFAULT_WEBHOOK_TOLERANCE),
        )

    @property
    def success_url(self) -> str:
        # Stripe substitutes {CHECKOUT_SESSION_ID} itself
        return f"{self.app_url}/billing/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self.app_url}/pricing?canceled=1"

    @property
    def portal_return_url(self) -> str:
        return f"{self.app_url}/settings/billing"
