"""
Briefing - Subscriber Store.

In-process subscriber list keyed by normalized email. A subscriber
who unsubscribes is kept inactive so a later subscribe reactivates
the same record and token.
"""

import hmac
import logging
import re
import secrets
from collections import defaultdict
from typing import Optional

from briefing.models import Subscriber, SubscriptionResult
from core.clock import ClockProtocol, SystemClock
from data_sources.payloads import Island


logger = logging.getLogger(__name__)


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


class SubscriberStore:
    """
    Daily briefing subscribers.

    Usage:
        store = SubscriberStore()
        result = store.subscribe("surfer@example.com", Island.MAUI)
        store.unsubscribe("surfer@example.com", result.subscriber.unsubscribe_token)
    """

    def __init__(self, clock: Optional[ClockProtocol] = None) -> None:
        self._clock = clock or SystemClock()
        self._subscribers: dict[str, Subscriber] = {}

    def subscribe(self, email: str, island: Island = Island.OAHU) -> SubscriptionResult:
        address = normalize_email(email or "")
        if not is_valid_email(address):
            return SubscriptionResult(False, "Invalid email address")

        existing = self._subscribers.get(address)
        if existing is not None:
            if existing.active:
                return SubscriptionResult(False, "Email already subscribed", existing)
            existing.active = True
            existing.island = island
            existing.subscribed_at = self._clock.now()
            logger.info(f"Subscription reactivated for {island.value}")
            return SubscriptionResult(True, "Subscription reactivated", existing)

        subscriber = Subscriber(
            id=secrets.token_hex(8),
            email=address,
            island=island,
            subscribed_at=self._clock.now(),
            unsubscribe_token=secrets.token_urlsafe(16),
        )
        self._subscribers[address] = subscriber
        logger.info(f"New subscriber {subscriber.id} for {island.value}")
        return SubscriptionResult(True, "Successfully subscribed to daily Hawaii briefing", subscriber)

    def unsubscribe(self, email: str, token: Optional[str] = None) -> SubscriptionResult:
        """Deactivate a subscriber; a supplied token must match theirs."""
        subscriber = self._subscribers.get(normalize_email(email or ""))
        if subscriber is None:
            return SubscriptionResult(False, "Email not found")

        if token is not None and not hmac.compare_digest(token, subscriber.unsubscribe_token):
            return SubscriptionResult(False, "Invalid unsubscribe token")

        subscriber.active = False
        logger.info(f"Subscriber {subscriber.id} unsubscribed")
        return SubscriptionResult(True, "Successfully unsubscribed", subscriber)

    def get(self, email: str) -> Optional[Subscriber]:
        return self._subscribers.get(normalize_email(email))

    def active(self) -> list[Subscriber]:
        return [s for s in self._subscribers.values() if s.active]

    def group_by_island(self) -> dict[Island, list[Subscriber]]:
        """Active subscribers per island, in subscription order."""
        groups: dict[Island, list[Subscriber]] = defaultdict(list)
        for subscriber in self.active():
            groups[subscriber.island].append(subscriber)
        return dict(groups)

    def __len__(self) -> int:
        return len(self._subscribers)
