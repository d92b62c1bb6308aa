"""
Tests for the system notification sink
"""

import pytest

from loan_accounting.notifications import (
    NotificationSink, NotificationStatus, NotificationType, SystemNotification
)
from loan_accounting.storage import InMemoryStorage


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def sink(storage):
    return NotificationSink(storage)


class TestNotificationSink:

    def test_create_notification(self, sink, storage):
        notification = sink.create_notification(
            NotificationType.QUARTERLY_INTEREST,
            NotificationStatus.SUCCESS,
            "Quarterly Interest (Q3 FY 2025-26): ₹450.00 charged across 1 customers, 0 skipped, 0 errors",
            {"source": "quarterly-interest-cron", "success_count": 1}
        )

        assert isinstance(notification, SystemNotification)
        row = storage.load("system_notifications", notification.id)
        assert row["type"] == "quarterly_interest"
        assert row["status"] == "success"
        assert row["metadata"] == {"source": "quarterly-interest-cron", "success_count": 1}

    def test_metadata_defaults_to_empty(self, sink):
        notification = sink.create_notification(NotificationType.SYSTEM, NotificationStatus.PENDING, "hi")
        assert notification.metadata == {}

    def test_list_round_trip(self, sink):
        created = sink.create_notification(NotificationType.BACKUP, NotificationStatus.ERROR,
                                           "Backup failed", {"error": "disk full"})

        listed = sink.list_notifications()

        assert len(listed) == 1
        assert listed[0].id == created.id
        assert listed[0].type == NotificationType.BACKUP
        assert listed[0].status == NotificationStatus.ERROR
        assert listed[0].metadata == {"error": "disk full"}

    def test_filters(self, sink):
        sink.create_notification(NotificationType.QUARTERLY_INTEREST, NotificationStatus.SUCCESS, "a")
        sink.create_notification(NotificationType.QUARTERLY_INTEREST, NotificationStatus.WARNING, "b")
        sink.create_notification(NotificationType.BACKUP, NotificationStatus.SUCCESS, "c")

        by_type = sink.list_notifications(notification_type=NotificationType.QUARTERLY_INTEREST)
        by_status = sink.list_notifications(status=NotificationStatus.SUCCESS)
        both = sink.list_notifications(NotificationType.QUARTERLY_INTEREST, NotificationStatus.WARNING)

        assert {n.message for n in by_type} == {"a", "b"}
        assert {n.message for n in by_status} == {"a", "c"}
        assert [n.message for n in both] == ["b"]
