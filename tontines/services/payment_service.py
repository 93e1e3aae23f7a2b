"""
Payment ledger.

A contribution moves through:

    (none) / pending --mark_paid--> participant_paid --validate--> confirmed
                                    participant_paid --reject----> rejected
                                    rejected --mark_paid--> participant_paid

Each move appends a PaymentAuditEntry. Overdue is never stored: it is
derived from the due date and the wall clock whenever it is read.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from django.core.exceptions import PermissionDenied
from django.core.files.storage import default_storage
from django.utils import timezone
import logging

from constance import config

from notifications.helpers import NotificationHelper

from ..exceptions import InvalidTransition, NoPendingPayment, ValidationError
from ..models import Payment, PaymentAuditEntry
from ..proofs import build_submission
from ..repository import tontine_repository
from ..rotation import due_date_for
from .common import require_initiator, participants_of, find_participant

logger = logging.getLogger(__name__)

# None stands for "no payment row yet"
ALLOWED_TRANSITIONS = {
    None: {'participant_paid'},
    'pending': {'participant_paid'},
    'participant_paid': {'confirmed', 'rejected'},
    'rejected': {'participant_paid'},
    'confirmed': set(),
}

OWED_STATUSES = ('pending', 'rejected')


def assert_transition(current, target):
    """Raise InvalidTransition unless current -> target is allowed"""
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition(
            f"Payment can not go from {current or 'none'} to {target}",
            current=current,
            target=target,
        )


@dataclass
class PaymentState:
    """Read model of one participant's contribution for one cycle"""

    participant: object
    cycle: int
    status: str
    due_date: date
    is_overdue: bool
    payment: Optional[Payment] = None


class PaymentService:
    """Marks, validates and rejects contributions of the current cycle"""

    @staticmethod
    def find_payment(tontine, participant, cycle=None):
        cycle = tontine.current_cycle if cycle is None else cycle
        return Payment.objects.filter(participant=participant, cycle=cycle).first()

    @staticmethod
    def _check_can_mark_paid(tontine, participant, actor):
        if actor is None or participant.user_id != actor.pk:
            raise PermissionDenied("Only the participant can mark their own contribution as paid")
        if tontine.status != 'active':
            raise InvalidTransition("Payments can only be marked on an active tontine", status=tontine.status)
        if participant.position == tontine.current_cycle:
            raise InvalidTransition(
                "The beneficiary of the cycle does not contribute",
                cycle=tontine.current_cycle,
            )

        payment = PaymentService.find_payment(tontine, participant)
        assert_transition(payment.status if payment else None, 'participant_paid')
        return payment

    @staticmethod
    def _append_audit(payment, action, actor, notes=''):
        return PaymentAuditEntry.objects.create(
            payment=payment,
            action=action,
            actor=actor,
            timestamp=timezone.now(),
            notes=notes,
        )

    @staticmethod
    def mark_paid(tontine_id, participant_id, actor, proof):
        """
        Record that the participant paid the current cycle.

        `proof` is a tontines.proofs.ProofSubmission. A rejected payment is
        resubmitted on the same row.
        """

        def operation(tontine, outbox):
            participant = find_participant(tontine, participant_id)
            payment = PaymentService._check_can_mark_paid(tontine, participant, actor)
            now = timezone.now()

            if payment is None:
                payment = Payment(
                    participant=participant,
                    tontine=tontine,
                    cycle=tontine.current_cycle,
                    amount=tontine.amount,
                    due_date=due_date_for(tontine),
                )
            payment.status = 'participant_paid'
            payment.paid_date = now
            payment.proof_reference = proof.reference
            payment.proof_details = proof.as_json()
            payment.rejection_reason = ''
            payment.validated_by = None
            payment.validated_at = None
            payment.save()

            PaymentService._append_audit(payment, 'participant_marked_paid', actor, notes=proof.reference)
            NotificationHelper.notify_payment_submitted(outbox, tontine, participant, payment.cycle)
            logger.info(
                f"Payment of {participant.user.username} for cycle {payment.cycle} "
                f"of {tontine.name} marked paid"
            )
            return payment

        return tontine_repository.run_atomic(tontine_id, operation)

    @staticmethod
    def submit_proof(tontine_id, participant_id, actor, uploaded_file, transfer_data):
        """
        Store an uploaded proof and mark the contribution paid.

        The file is stored before the ledger changes and removed again if
        the payment can not be marked.
        """
        tontine = tontine_repository.load(tontine_id)
        participant = find_participant(tontine, participant_id)
        PaymentService._check_can_mark_paid(tontine, participant, actor)

        proof = build_submission(uploaded_file, transfer_data, tontine, participant, tontine.current_cycle)
        try:
            return PaymentService.mark_paid(tontine_id, participant_id, actor, proof)
        except Exception:
            default_storage.delete(proof.reference)
            raise

    @staticmethod
    def validate(tontine_id, participant_id, actor):
        """Initiator confirms a submitted contribution"""

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if not tontine.is_running():
                raise InvalidTransition("Tontine is not running", status=tontine.status)

            participant = find_participant(tontine, participant_id)
            payment = PaymentService.find_payment(tontine, participant)
            if payment is None or payment.status != 'participant_paid':
                raise NoPendingPayment(
                    f"No payment awaiting validation for {participant.display_name} in cycle {tontine.current_cycle}",
                    participant_id=str(participant.pk),
                    cycle=tontine.current_cycle,
                )
            assert_transition(payment.status, 'confirmed')

            payment.status = 'confirmed'
            payment.validated_by = actor
            payment.validated_at = timezone.now()
            payment.save(update_fields=['status', 'validated_by', 'validated_at', 'updated_at'])

            PaymentService._append_audit(payment, 'initiator_validated', actor)
            NotificationHelper.notify_payment_validated(outbox, tontine, participant, payment.cycle)
            logger.info(f"✅ Payment of {participant.user.username} for cycle {payment.cycle} confirmed")

            if config.TONTINE_AUTO_ADVANCE and tontine.status == 'active' and PaymentService.is_cycle_settled(tontine):
                from .lifecycle_service import TontineService
                TontineService.advance_in_place(tontine, outbox)
            return payment

        return tontine_repository.run_atomic(tontine_id, operation)

    @staticmethod
    def reject(tontine_id, participant_id, actor, reason):
        """Initiator refuses a submitted contribution; the participant may resubmit"""
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError("A reason is required to reject a payment", errors={'reason': 'required'})

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if not tontine.is_running():
                raise InvalidTransition("Tontine is not running", status=tontine.status)

            participant = find_participant(tontine, participant_id)
            payment = PaymentService.find_payment(tontine, participant)
            if payment is None or payment.status != 'participant_paid':
                raise NoPendingPayment(
                    f"No payment awaiting validation for {participant.display_name} in cycle {tontine.current_cycle}",
                    participant_id=str(participant.pk),
                    cycle=tontine.current_cycle,
                )
            assert_transition(payment.status, 'rejected')

            payment.status = 'rejected'
            payment.rejection_reason = reason
            payment.save(update_fields=['status', 'rejection_reason', 'updated_at'])

            PaymentService._append_audit(payment, 'initiator_rejected', actor, notes=f"Payment rejected: {reason}")
            NotificationHelper.notify_payment_rejected(outbox, tontine, participant, payment.cycle, reason)
            logger.info(f"❌ Payment of {participant.user.username} for cycle {payment.cycle} rejected: {reason}")
            return payment

        return tontine_repository.run_atomic(tontine_id, operation)

    # ========================================
    # READ SIDE
    # ========================================

    @staticmethod
    def payment_state(tontine, participant, cycle=None, now=None, payment=None):
        cycle = tontine.current_cycle if cycle is None else cycle
        if payment is None:
            payment = PaymentService.find_payment(tontine, participant, cycle)
        today = timezone.localdate(now or timezone.now())
        due_date = payment.due_date if payment else due_date_for(tontine, cycle)
        status = payment.status if payment else 'pending'

        return PaymentState(
            participant=participant,
            cycle=cycle,
            status=status,
            due_date=due_date,
            is_overdue=status in OWED_STATUSES and today > due_date,
            payment=payment,
        )

    @staticmethod
    def cycle_overview(tontine, now=None):
        """State of every contributor of the current cycle, in rotation order"""
        if not tontine.is_running():
            return []
        payments = {
            p.participant_id: p
            for p in Payment.objects.filter(tontine=tontine, cycle=tontine.current_cycle)
        }
        return [
            PaymentService.payment_state(tontine, participant, now=now, payment=payments.get(participant.pk))
            for participant in participants_of(tontine)
            if participant.position != tontine.current_cycle
        ]

    @staticmethod
    def outstanding_contributors(tontine):
        return [state.participant for state in PaymentService.cycle_overview(tontine) if state.status != 'confirmed']

    @staticmethod
    def is_cycle_settled(tontine):
        """Every non-beneficiary contribution of the current cycle is confirmed"""
        return tontine.is_running() and not PaymentService.outstanding_contributors(tontine)

    @staticmethod
    def overdue_states(tontine, now=None):
        return [state for state in PaymentService.cycle_overview(tontine, now=now) if state.is_overdue]

    @staticmethod
    def audit_trail(payment):
        return list(payment.audit_log.select_related('actor').order_by('timestamp', 'id'))

    @staticmethod
    def payment_history(participant):
        return list(participant.payments.order_by('cycle'))
