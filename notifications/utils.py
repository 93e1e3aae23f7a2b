"""
Notification emission.

Emitting is fire-and-forget: a failure to store or queue a notification is
logged and never reaches the caller, so it can not undo the tontine change
that triggered it.
"""

from django.db import transaction
from django.utils import timezone
import logging

from .models import Notification

logger = logging.getLogger(__name__)


def create_notification(user, notification_type, title, message, tontine=None, action_url=''):
    """
    Store a notification for `user` and queue its delivery.

    Returns the Notification, or None when it could not be stored.

    Example:
        create_notification(
            user=participant.user,
            notification_type='payment_validated',
            title="Payment confirmed",
            message="Your contribution for cycle 2 was confirmed.",
            tontine=tontine,
        )
    """
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                user=user,
                tontine=tontine,
                notification_type=notification_type,
                title=title,
                message=message,
                action_url=action_url or '',
            )
    except Exception:
        logger.exception(f"❌ Failed to store {notification_type} notification for user {user.pk}")
        return None

    try:
        from .tasks import deliver_notification
        deliver_notification.delay(str(notification.id))
    except Exception as e:
        logger.warning(f"Could not queue delivery of notification {notification.id}: {e}")

    logger.info(f"Created {notification_type} notification for {user.username}: {title}")
    return notification


class NotificationOutbox:
    """
    Notifications held back until the surrounding tontine update commits.

    A service adds to the outbox while it mutates the aggregate; the
    repository flushes it once the transaction succeeded and drops it when
    the attempt is rolled back or retried.
    """

    def __init__(self):
        self._pending = []

    def __len__(self):
        return len(self._pending)

    def add(self, user, notification_type, title, message, tontine=None, action_url=''):
        self._pending.append({
            'user': user,
            'notification_type': notification_type,
            'title': title,
            'message': message,
            'tontine': tontine,
            'action_url': action_url,
        })

    def flush(self):
        """Emit everything queued; returns the notifications stored"""
        pending, self._pending = self._pending, []
        created = []
        for item in pending:
            notification = create_notification(**item)
            if notification is not None:
                created.append(notification)
        return created


def mark_all_as_read(user):
    """Mark every unread notification of `user` as read; returns the count"""
    return Notification.objects.filter(user=user, is_read=False).update(
        is_read=True,
        read_at=timezone.now()
    )


def get_unread_count(user):
    return Notification.objects.filter(user=user, is_read=False).count()
