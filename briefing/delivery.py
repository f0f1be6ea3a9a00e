"""
Briefing - Delivery.

============================================================
DAILY SEND
============================================================

    active subscribers ── group by island
        │
        ▼ per island: generate + render once
        ▼ send to every subscriber concurrently
        │   (one failed send never stops the others)
        ▼
    DeliveryReport(sent, failed)
        │
        ▼ any failures: push an admin alert

An island whose briefing cannot be generated counts all of its
subscribers as failed; the other islands still go out.

New subscribers get a welcome email through the same delivery
port. A welcome that cannot be sent never undoes the subscription.
============================================================
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from briefing.generator import BriefingGenerator
from briefing.models import BriefingTemplate, DeliveryReport, PushNotification, Subscriber, SubscriptionResult
from briefing.subscribers import SubscriberStore
from briefing.templates import render_briefing, render_welcome
from data_sources.payloads import Island


logger = logging.getLogger(__name__)


ADMIN_SEGMENT = "admin"


class BriefingDelivery(ABC):
    """Outbound channel for rendered briefings."""

    @abstractmethod
    async def send(self, subscriber: Subscriber, template: BriefingTemplate) -> None:
        """Deliver one personalized briefing; raises on failure."""
        pass


class LoggingDelivery(BriefingDelivery):
    """Logs each delivery instead of sending it."""

    def __init__(self) -> None:
        self.delivered: list[tuple[str, str]] = []

    async def send(self, subscriber: Subscriber, template: BriefingTemplate) -> None:
        personalized = template.personalize(subscriber.email)
        self.delivered.append((subscriber.email, personalized.subject))
        logger.info(f"Sending briefing to {subscriber.email}: {personalized.subject}")


class PushDelivery(ABC):
    """Outbound channel for short push notifications."""

    @abstractmethod
    async def push(self, notification: PushNotification, segments: Optional[list[str]] = None) -> bool:
        """Push to the given segments (everyone when None); returns whether it went out."""
        pass


class LoggingPushDelivery(PushDelivery):
    """Logs each notification instead of pushing it."""

    def __init__(self) -> None:
        self.pushed: list[tuple[PushNotification, Optional[list[str]]]] = []

    async def push(self, notification: PushNotification, segments: Optional[list[str]] = None) -> bool:
        self.pushed.append((notification, segments))
        logger.info(f"Push to {segments or 'all'}: {notification.title} - {notification.body}")
        return True


class BriefingDispatcher:
    """
    Sends the daily briefing to every active subscriber.

    Usage:
        dispatcher = BriefingDispatcher(store, generator, LoggingDelivery(), LoggingPushDelivery())
        report = await dispatcher.send_daily_briefing()
    """

    def __init__(
        self,
        store: SubscriberStore,
        generator: BriefingGenerator,
        delivery: BriefingDelivery,
        push: Optional[PushDelivery] = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.delivery = delivery
        self.push = push

    async def preview(self, island: Island) -> BriefingTemplate:
        """Rendered briefing for an island without sending it."""
        briefing = await self.generator.generate(island)
        return render_briefing(briefing)

    async def send_daily_briefing(self) -> DeliveryReport:
        report = DeliveryReport()
        groups = self.store.group_by_island()

        if not groups:
            logger.info("No active subscribers, nothing to send")
            return report

        logger.info(f"Starting daily briefing for {sum(len(s) for s in groups.values())} subscribers")

        for island, subscribers in groups.items():
            try:
                template = await self.preview(island)
            except Exception as e:
                logger.exception(f"Failed to build {island.value} briefing: {e}")
                report.record(island, sent=0, failed=len(subscribers))
                continue

            outcomes = await asyncio.gather(
                *(self.delivery.send(subscriber, template) for subscriber in subscribers),
                return_exceptions=True,
            )
            failed = 0
            for subscriber, outcome in zip(subscribers, outcomes):
                if isinstance(outcome, BaseException):
                    failed += 1
                    logger.warning(f"Delivery to subscriber {subscriber.id} failed: {outcome}")

            report.record(island, sent=len(subscribers) - failed, failed=failed)
            logger.info(f"Sent {len(subscribers) - failed} briefings for {island.value}, {failed} failed")

        logger.info(f"Daily briefing complete: {report.sent} sent, {report.failed} failed")

        if report.failed > 0:
            await self.notify_admins(PushNotification(
                title="Island Pulse Admin Alert",
                body=f"Daily briefing: {report.sent} sent, {report.failed} failed",
                tag="admin-alert",
                data=report.to_dict(),
            ))
        return report

    async def notify_admins(self, notification: PushNotification) -> bool:
        """Push to the admin segment; a push failure is logged, never raised."""
        if self.push is None:
            return False
        try:
            return await self.push.push(notification, [ADMIN_SEGMENT])
        except Exception as e:
            logger.error(f"Admin push '{notification.title}' failed: {e}")
            return False

    async def send_test_briefing(self, email: str) -> bool:
        """Send the current briefing to one known subscriber."""
        subscriber = self.store.get(email)
        if subscriber is None:
            return False
        try:
            template = await self.preview(subscriber.island)
            await self.delivery.send(subscriber, template)
        except Exception as e:
            logger.error(f"Test briefing to {subscriber.id} failed: {e}")
            return False
        return True

    async def subscribe(self, email: str, island: Island = Island.OAHU) -> SubscriptionResult:
        """Subscribe through the store, then send the welcome email."""
        result = self.store.subscribe(email, island)
        if result.success and result.subscriber is not None:
            await self.welcome_subscriber(result.subscriber)
        return result

    async def welcome_subscriber(self, subscriber: Subscriber) -> bool:
        try:
            await self.delivery.send(subscriber, render_welcome(subscriber))
        except Exception as e:
            logger.warning(f"Welcome email to subscriber {subscriber.id} failed: {e}")
            return False
        logger.info(f"Welcome email sent to subscriber {subscriber.id}")
        return True
