"""
Convenience helpers for the notifications produced by tontine events.

Every method takes the outbox of the running tontine update as its first
argument; pass None to emit immediately instead.

Usage:
    from notifications.helpers import NotificationHelper

    NotificationHelper.notify_payment_validated(
        outbox,
        tontine=tontine,
        participant=participant,
        cycle=tontine.current_cycle,
    )
"""

from django.urls import reverse
import logging

from .utils import create_notification

logger = logging.getLogger(__name__)


def format_amount(amount):
    """10000 -> '10 000 FCFA'"""
    return f"{int(amount):,}".replace(',', ' ') + " FCFA"


def _tontine_url(tontine):
    return reverse('tontines:tontine_detail', kwargs={'tontine_id': tontine.id})


def _send(outbox, **kwargs):
    if outbox is not None:
        outbox.add(**kwargs)
        return None
    return create_notification(**kwargs)


class NotificationHelper:
    """
    One method per tontine event, so titles and wording stay consistent
    across services, tasks and commands.
    """

    # ========================================
    # LIFECYCLE NOTIFICATIONS
    # ========================================

    @staticmethod
    def notify_tontine_started(outbox, tontine, participant, beneficiary, first_due_date):
        """Tell a participant the rotation has begun and where they stand"""
        if participant.pk == beneficiary.pk:
            turn = "You collect the pool in cycle 1."
        else:
            turn = f"Your turn to collect comes in cycle {participant.position}."
        return _send(
            outbox,
            user=participant.user,
            notification_type='tontine_started',
            title=f"{tontine.name} has started!",
            message=(
                f"The rotation has started. {turn} "
                f"First contribution of {format_amount(tontine.amount)} is due on {first_due_date:%d/%m/%Y}."
            ),
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_payout_ready(outbox, tontine, beneficiary):
        """Tell the current beneficiary it is their cycle"""
        return _send(
            outbox,
            user=beneficiary.user,
            notification_type='payout_ready',
            title="It's your turn",
            message=(
                f"You are the beneficiary of cycle {tontine.current_cycle} in {tontine.name}. "
                f"Expected pool: {format_amount(tontine.get_pool_amount())}."
            ),
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_tontine_suspended(outbox, tontine, user):
        return _send(
            outbox,
            user=user,
            notification_type='tontine_suspended',
            title=f"{tontine.name} suspended",
            message=(
                f"The initiator has suspended {tontine.name} during cycle {tontine.current_cycle}. "
                f"Payments already submitted keep their status."
            ),
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_tontine_resumed(outbox, tontine, user):
        return _send(
            outbox,
            user=user,
            notification_type='tontine_resumed',
            title=f"{tontine.name} resumed",
            message=f"{tontine.name} is active again, cycle {tontine.current_cycle} continues.",
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_cycle_advanced(outbox, tontine, participant, due_date):
        return _send(
            outbox,
            user=participant.user,
            notification_type='cycle_advanced',
            title=f"Cycle {tontine.current_cycle} opened",
            message=(
                f"{tontine.name} moved to cycle {tontine.current_cycle}. "
                f"Next contribution of {format_amount(tontine.amount)} is due on {due_date:%d/%m/%Y}."
            ),
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_tontine_completed(outbox, tontine, user):
        return _send(
            outbox,
            user=user,
            notification_type='tontine_completed',
            title=f"{tontine.name} completed 🎉",
            message=f"Every participant of {tontine.name} has received their payout. Thank you for taking part!",
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    # ========================================
    # PAYMENT NOTIFICATIONS
    # ========================================

    @staticmethod
    def notify_payment_submitted(outbox, tontine, participant, cycle):
        """Ask the initiator to review a proof"""
        return _send(
            outbox,
            user=tontine.initiator,
            notification_type='payment_submitted',
            title="Payment proof to review",
            message=(
                f"{participant.display_name} marked the cycle {cycle} contribution of "
                f"{format_amount(tontine.amount)} as paid in {tontine.name}. Please validate or reject it."
            ),
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_payment_validated(outbox, tontine, participant, cycle):
        return _send(
            outbox,
            user=participant.user,
            notification_type='payment_validated',
            title="Payment confirmed",
            message=f"Your cycle {cycle} contribution to {tontine.name} was confirmed by the initiator.",
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_payment_rejected(outbox, tontine, participant, cycle, reason):
        return _send(
            outbox,
            user=participant.user,
            notification_type='payment_rejected',
            title="Payment rejected",
            message=(
                f"Your cycle {cycle} contribution to {tontine.name} was rejected: {reason}. "
                f"Please submit a new proof."
            ),
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_payment_reminder(outbox, tontine, participant, due_date, overdue=False):
        if overdue:
            notification_type = 'payment_overdue'
            title = "Contribution overdue"
            message = (
                f"Your contribution of {format_amount(tontine.amount)} to {tontine.name} "
                f"was due on {due_date:%d/%m/%Y}. Please pay and upload your proof."
            )
        else:
            notification_type = 'payment_due'
            title = "Contribution due soon"
            message = (
                f"Your contribution of {format_amount(tontine.amount)} to {tontine.name} "
                f"is due on {due_date:%d/%m/%Y}."
            )
        return _send(
            outbox,
            user=participant.user,
            notification_type=notification_type,
            title=title,
            message=message,
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    # ========================================
    # PARTICIPANT NOTIFICATIONS
    # ========================================

    @staticmethod
    def notify_participant_joined(outbox, tontine, participant):
        limit = "unlimited" if tontine.is_unlimited else tontine.max_participants
        return _send(
            outbox,
            user=tontine.initiator,
            notification_type='participant_joined',
            title="New participant",
            message=(
                f"{participant.display_name} joined {tontine.name} at position {participant.position} "
                f"(limit: {limit})."
            ),
            tontine=tontine,
            action_url=_tontine_url(tontine),
        )

    @staticmethod
    def notify_participant_removed(outbox, tontine, user):
        return _send(
            outbox,
            user=user,
            notification_type='participant_removed',
            title=f"Removed from {tontine.name}",
            message=f"You are no longer a participant of {tontine.name}.",
            tontine=tontine,
        )

    @staticmethod
    def notify_custom(outbox, user, title, message, tontine=None):
        """
        Create a custom notification

        Example:
            NotificationHelper.notify_custom(
                None,
                user=request.user,
                title="Important Update",
                message="The initiator changed the start date",
            )
        """
        return _send(
            outbox,
            user=user,
            notification_type='general',
            title=title,
            message=message,
            tontine=tontine,
        )
