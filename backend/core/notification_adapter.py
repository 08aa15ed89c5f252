# backend/core/notification_adapter.py

from abc import ABC, abstractmethod
from typing import Dict, Optional, Any
from dataclasses import dataclass
from enum import Enum
import logging
from datetime import datetime


logger = logging.getLogger(__name__)


class NotificationPriority(str, Enum):
    """Notification priority levels"""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class NotificationChannel(str, Enum):
    """Terminal groups that receive advisory order events"""

    KITCHEN = "kitchen"
    WAITERS = "waiters"


@dataclass
class NotificationMessage:
    """Standard notification message structure"""

    subject: str
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    play_sound: bool = False
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow()


class NotificationAdapter(ABC):
    """
    Abstract base class for notification adapters

    Implement this interface to push order events to kitchen displays,
    waiter handsets or any other terminal group.
    """

    @abstractmethod
    def send_to_channel(
        self, channel: NotificationChannel, message: NotificationMessage
    ) -> bool:
        """Send notification to every terminal listening on a channel"""
        pass


class LoggingAdapter(NotificationAdapter):
    """
    Default logging adapter for notifications

    This adapter logs all notifications and can be used for
    development/testing or as a fallback
    """

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    def send_to_channel(
        self, channel: NotificationChannel, message: NotificationMessage
    ) -> bool:
        logger.log(
            self.log_level,
            f"[NOTIFICATION] To '{channel.value}' - {message.subject}: {message.message}",
            extra={
                "notification_channel": channel.value,
                "subject": message.subject,
                "priority": message.priority.value,
                "play_sound": message.play_sound,
                "timestamp": message.timestamp.isoformat(),
                "metadata": message.metadata,
            },
        )
        return True
