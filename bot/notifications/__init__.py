"""
Package: bot/notifications

Provides NotificationType, Notification, and NotificationPoller.
"""
from .model import NotificationType, Notification
from .poller import NotificationPoller
