"""
Briefing package - Daily island briefing for email subscribers.
"""

from briefing.delivery import (
    BriefingDelivery,
    BriefingDispatcher,
    LoggingDelivery,
    LoggingPushDelivery,
    PushDelivery,
)
from briefing.generator import BriefingGenerator
from briefing.models import (
    BriefingTemplate,
    DailyBriefing,
    DeliveryReport,
    PushNotification,
    Subscriber,
    SubscriberPreferences,
    SubscriptionResult,
)
from briefing.subscribers import SubscriberStore
from briefing.templates import render_briefing, render_welcome


__all__ = [
    "BriefingDelivery",
    "BriefingDispatcher",
    "BriefingGenerator",
    "BriefingTemplate",
    "DailyBriefing",
    "DeliveryReport",
    "LoggingDelivery",
    "LoggingPushDelivery",
    "PushDelivery",
    "PushNotification",
    "Subscriber",
    "SubscriberPreferences",
    "SubscriberStore",
    "SubscriptionResult",
    "render_briefing",
    "render_welcome",
]
