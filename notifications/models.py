from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone
import uuid


class Notification(models.Model):
    """
    A message for one user about a tontine event.

    Rows are written by notifications.utils.create_notification; delivery
    over e-mail happens afterwards in a Celery task and only flips
    `is_sent`.
    """

    NOTIFICATION_TYPE_CHOICES = [
        ('tontine_started', 'Tontine Started'),
        ('tontine_suspended', 'Tontine Suspended'),
        ('tontine_resumed', 'Tontine Resumed'),
        ('tontine_completed', 'Tontine Completed'),
        ('cycle_advanced', 'Cycle Advanced'),
        ('payout_ready', 'Payout Ready'),
        ('payment_due', 'Payment Due'),
        ('payment_overdue', 'Payment Overdue'),
        ('payment_submitted', 'Payment Submitted'),
        ('payment_validated', 'Payment Validated'),
        ('payment_rejected', 'Payment Rejected'),
        ('participant_joined', 'Participant Joined'),
        ('participant_removed', 'Participant Removed'),
        ('general', 'General'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='tontine_notifications')
    tontine = models.ForeignKey(
        'tontines.Tontine',
        on_delete=models.SET_NULL,
        related_name='notifications',
        null=True,
        blank=True
    )

    notification_type = models.CharField(max_length=30, choices=NOTIFICATION_TYPE_CHOICES, default='general')
    title = models.CharField(max_length=200)
    message = models.TextField()
    action_url = models.CharField(max_length=500, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    is_sent = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'tontine_notification'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='tontine_notif_user_read_idx'),
        ]
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'

    def __str__(self):
        return f"{self.user.username} - {self.title}"

    def mark_as_read(self):
        """Mark notification as read"""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])
