"""
System Notification Module

Append-only store of system notifications shown to administrators in the
notification panel. Rows are only ever inserted; there is no update or delete.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum
import uuid

from .storage import StorageInterface, StorageRecord, utc_now, parse_datetime


class NotificationType(Enum):
    """Types of system notifications"""
    BACKUP = "backup"
    USER_CREATED = "user_created"
    SENIORITY_REQUEST = "seniority_request"
    INSTALLMENT_DEFAULT = "installment_default"
    QUARTERLY_INTEREST = "quarterly_interest"
    SYSTEM = "system"


class NotificationStatus(Enum):
    """Outcome shown for a notification"""
    PENDING = "pending"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class SystemNotification(StorageRecord):
    """One notification row"""
    type: NotificationType
    status: NotificationStatus
    message: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['type'] = self.type.value
        result['status'] = self.status.value
        return result


class NotificationSink:
    """Inserts and lists system notifications"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "system_notifications"

    def create_notification(
        self,
        notification_type: NotificationType,
        status: NotificationStatus,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SystemNotification:
        """Insert one notification row and return it"""
        now = utc_now()
        notification = SystemNotification(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            type=notification_type,
            status=status,
            message=message,
            metadata=metadata or {}
        )
        self.storage.insert(self.table_name, notification.id, notification.to_dict())
        return notification

    def list_notifications(
        self,
        notification_type: Optional[NotificationType] = None,
        status: Optional[NotificationStatus] = None
    ) -> List[SystemNotification]:
        """Notifications newest first, optionally filtered"""
        filters = {}
        if notification_type:
            filters['type'] = notification_type.value
        if status:
            filters['status'] = status.value

        notifications = [
            self._notification_from_dict(row)
            for row in self.storage.find(self.table_name, filters)
        ]
        notifications.sort(key=lambda n: n.created_at, reverse=True)
        return notifications

    def _notification_from_dict(self, data: Dict[str, Any]) -> SystemNotification:
        return SystemNotification(
            id=data['id'],
            created_at=parse_datetime(data['created_at']),
            updated_at=parse_datetime(data['updated_at']),
            type=NotificationType(data['type']),
            status=NotificationStatus(data['status']),
            message=data['message'],
            metadata=data.get('metadata') or {}
        )
