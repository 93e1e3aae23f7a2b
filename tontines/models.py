from django.db import models
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid


class Tontine(models.Model):
    """
    A rotating savings group.

    The tontine is the aggregate root: it owns its participants and,
    through them, every payment. All writes go through
    tontines.repository.TontineRepository so that `version` can guard
    concurrent updates.
    """

    FREQUENCY_CHOICES = [
        ('daily', 'Daily'),
        ('weekly', 'Weekly'),
        ('monthly', 'Monthly'),
        ('custom', 'Custom (every N days)'),
    ]

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('active', 'Active'),
        ('suspended', 'Suspended'),
        ('completed', 'Completed'),
    ]

    ORDER_TYPE_CHOICES = [
        ('manual', 'Manual'),
        ('random', 'Random'),
    ]

    GAIN_TYPE_CHOICES = [
        ('money', 'Money'),
        ('pack', 'Pack / Product'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    initiator = models.ForeignKey(User, on_delete=models.CASCADE, related_name='initiated_tontines')

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Contribution expected from each participant per cycle"
    )
    frequency = models.CharField(max_length=10, choices=FREQUENCY_CHOICES, default='monthly')
    custom_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Cycle length in days when frequency is custom"
    )
    fixed_payment_day = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(31)],
        help_text="Day of the month payments fall due (monthly tontines only)"
    )
    max_participants = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(2)],
        help_text="Leave empty for an unlimited number of participants"
    )
    start_date = models.DateField()

    current_cycle = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='draft')
    order_type = models.CharField(max_length=10, choices=ORDER_TYPE_CHOICES, default='manual')
    gain_type = models.CharField(max_length=10, choices=GAIN_TYPE_CHOICES, default='money')
    pack_description = models.TextField(blank=True)

    invite_code = models.CharField(max_length=12, unique=True)

    # Optimistic concurrency guard, bumped on every aggregate save
    version = models.PositiveIntegerField(default=0)

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tontine'
        ordering = ['-created_at']
        verbose_name = 'Tontine'
        verbose_name_plural = 'Tontines'

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"

    @property
    def is_unlimited(self):
        return self.max_participants is None

    def participant_count(self):
        return self.participants.count()

    def is_full(self):
        """Check if the tontine has reached its participant limit"""
        if self.is_unlimited:
            return False
        return self.participant_count() >= self.max_participants

    def is_running(self):
        """Active or suspended: positions are frozen and a cycle is open"""
        return self.status in ('active', 'suspended')

    def get_current_beneficiary(self):
        """Participant whose position matches the current cycle"""
        if not self.is_running():
            return None
        for participant in self.participants.all():
            if participant.position == self.current_cycle:
                return participant
        return None

    def get_pool_amount(self):
        """Amount collected for the beneficiary in one cycle"""
        contributors = max(self.participant_count() - 1, 0)
        return self.amount * contributors


class Participant(models.Model):
    """A user's seat in a tontine's payout rotation"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tontine = models.ForeignKey(Tontine, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='tontine_participations')

    position = models.PositiveIntegerField(help_text="1-based rank in the payout rotation")
    has_received_payout = models.BooleanField(default=False)
    payout_received_at = models.DateTimeField(null=True, blank=True)

    joined_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tontine_participant'
        unique_together = ['tontine', 'user']
        ordering = ['position', 'joined_at']
        verbose_name = 'Participant'
        verbose_name_plural = 'Participants'

    def __str__(self):
        return f"{self.user.username} #{self.position} in {self.tontine.name}"

    @property
    def display_name(self):
        full_name = self.user.get_full_name()
        return full_name or self.user.username


class Payment(models.Model):
    """
    One participant's contribution for one cycle.

    A row only exists once the participant has acted for that cycle;
    before that the contribution is implicitly pending. Status changes
    are mirrored by PaymentAuditEntry rows.
    """

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('participant_paid', 'Paid (awaiting validation)'),
        ('confirmed', 'Confirmed'),
        ('rejected', 'Rejected'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    participant = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name='payments')
    tontine = models.ForeignKey(Tontine, on_delete=models.CASCADE, related_name='payments')

    cycle = models.PositiveIntegerField(help_text="Rotation cycle this payment is for")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField()
    paid_date = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    # Evidence of the off-band transfer
    proof_reference = models.CharField(max_length=500, blank=True)
    proof_details = models.JSONField(default=dict, blank=True)

    rejection_reason = models.TextField(blank=True)
    validated_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='validated_tontine_payments'
    )
    validated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tontine_payment'
        unique_together = ['participant', 'cycle']
        ordering = ['cycle', 'created_at']
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'

    def __str__(self):
        return f"{self.participant.user.username} - Cycle {self.cycle} - {self.get_status_display()}"


class PaymentAuditEntry(models.Model):
    """Append-only history of a payment's status changes"""

    ACTION_CHOICES = [
        ('participant_marked_paid', 'Participant marked paid'),
        ('initiator_validated', 'Initiator validated'),
        ('initiator_rejected', 'Initiator rejected'),
    ]

    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='audit_log')
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    actor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='tontine_payment_actions')
    timestamp = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'tontine_payment_audit'
        ordering = ['timestamp', 'id']
        verbose_name = 'Payment Audit Entry'
        verbose_name_plural = 'Payment Audit Entries'

    def __str__(self):
        return f"{self.get_action_display()} on {self.payment_id} at {self.timestamp:%Y-%m-%d %H:%M}"
