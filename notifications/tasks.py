from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone
import logging

from .models import Notification

logger = logging.getLogger(__name__)


@shared_task(name='notifications.deliver_notification', ignore_result=True)
def deliver_notification(notification_id):
    """
    Deliver a stored notification by e-mail.

    Best effort: the notification stays in the user's inbox whether or not
    the e-mail goes out, and a failure here is only logged.
    """
    try:
        notification = Notification.objects.select_related('user').get(pk=notification_id)
    except Notification.DoesNotExist:
        logger.warning(f"Notification {notification_id} vanished before delivery")
        return False

    if notification.is_sent:
        return True

    recipient = notification.user.email
    if not recipient:
        logger.info(f"No e-mail address for {notification.user.username}, notification kept in-app only")
        return False

    body = notification.message
    if notification.action_url:
        body += f"\n\n{settings.SITE_URL}{notification.action_url}"

    try:
        send_mail(
            subject=notification.title,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
    except Exception:
        logger.exception(f"❌ E-mail delivery failed for notification {notification.id}")
        return False

    notification.is_sent = True
    notification.sent_at = timezone.now()
    notification.save(update_fields=['is_sent', 'sent_at'])
    return True
