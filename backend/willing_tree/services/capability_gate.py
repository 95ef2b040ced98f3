"""Subscription capability checks, consulted as plain limits and booleans."""

from datetime import datetime, timezone
from typing import Literal

from willing_tree.config import Settings, get_settings
from willing_tree.db.models import SubscriptionStatus, User

Plan = Literal["free", "premium"]


class CapabilityGate:
    """Maps a user's subscription to what they may do."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def plan_for(self, party: User, *, now: datetime | None = None) -> Plan:
        """
        Resolve the effective plan.

        While billing is disabled everyone is treated as premium. Otherwise a
        premium subscription counts until its end date passes.
        """
        if not self.settings.billing_enabled:
            return "premium"
        if party.subscription_status != SubscriptionStatus.PREMIUM.value:
            return "free"
        end = party.subscription_end_date
        if end is not None and end <= (now or datetime.now(timezone.utc)):
            return "free"
        return "premium"

    def max_active_relationships(self, party: User) -> int:
        if self.plan_for(party) == "premium":
            return self.settings.premium_max_innermosts
        return self.settings.free_max_innermosts

    def has_extended_history(self, party: User) -> bool:
        """Whether the user may read scores of weeks before the current one."""
        return self.plan_for(party) == "premium"
