"""
System notification endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from .dependencies import LoanAccountingSystem, get_system
from ..notifications import NotificationStatus, NotificationType


router = APIRouter()


@router.get("")
def list_notifications(
    notification_type: Optional[NotificationType] = Query(default=None, alias="type"),
    notification_status: Optional[NotificationStatus] = Query(default=None, alias="status"),
    system: LoanAccountingSystem = Depends(get_system)
):
    """Notifications newest first"""
    notifications = system.notification_sink.list_notifications(
        notification_type=notification_type,
        status=notification_status
    )
    return {
        "notifications": [n.to_dict() for n in notifications],
        "count": len(notifications)
    }
