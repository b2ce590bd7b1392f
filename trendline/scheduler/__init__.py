"""Lifecycle-aware polling subscriptions"""

from .lifecycle import AppLifecycle, BACKGROUND, FOREGROUND
from .polling import PollingScheduler, Subscription, SubscriptionState, default_status

__all__ = [
    'AppLifecycle',
    'BACKGROUND',
    'FOREGROUND',
    'PollingScheduler',
    'Subscription',
    'SubscriptionState',
    'default_status',
]
