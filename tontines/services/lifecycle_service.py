"""
Tontine lifecycle: draft -> active <-> suspended -> completed.

Every mutating method runs inside TontineRepository.run_atomic() and
returns a freshly loaded tontine.
"""

from django.db import transaction
from django.forms.models import model_to_dict
from django.utils import timezone
import logging
import random
import string

from constance import config

from notifications.helpers import NotificationHelper

from ..exceptions import InvalidTransition, ValidationError
from ..forms import TontineForm
from ..models import Tontine, Participant
from ..repository import tontine_repository
from ..rotation import assign_positions, number_positions, due_date_for
from .common import require_initiator, participants_of
from .payment_service import PaymentService

logger = logging.getLogger(__name__)


class TontineService:
    """Handles tontine creation, configuration and status transitions"""

    EDITABLE_FIELDS = tuple(TontineForm.Meta.fields)

    @staticmethod
    def generate_invite_code(length=6):
        """Unique upper-case alphanumeric code used to join a tontine"""
        alphabet = string.ascii_uppercase + string.digits
        while True:
            code = ''.join(random.choices(alphabet, k=length))
            if not Tontine.objects.filter(invite_code=code).exists():
                return code

    @staticmethod
    def _form_errors(form):
        return {
            field: [error['message'] for error in errors]
            for field, errors in form.errors.get_json_data().items()
        }

    @staticmethod
    def create_tontine(initiator, data):
        """
        Create a draft tontine owned by `initiator`.

        Raises ValidationError with per-field errors when the settings are
        inconsistent (custom frequency without days, pack without
        description, start date in the past...).
        """
        form = TontineForm(data=data)
        if not form.is_valid():
            raise ValidationError("Invalid tontine settings", errors=TontineService._form_errors(form))

        with transaction.atomic():
            tontine = form.save(commit=False)
            tontine.initiator = initiator
            tontine.invite_code = TontineService.generate_invite_code()
            tontine.status = 'draft'
            tontine.current_cycle = 0
            tontine_repository.add(tontine)

        logger.info(f"Tontine {tontine.name} ({tontine.pk}) created by {initiator.username}, code {tontine.invite_code}")
        return tontine_repository.load(tontine.pk)

    @staticmethod
    def edit_tontine(tontine_id, actor, changes):
        """Change settings of a draft; unknown keys are rejected"""
        unknown = sorted(set(changes) - set(TontineService.EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"These fields can not be edited: {', '.join(unknown)}",
                errors={key: 'not_editable' for key in unknown}
            )

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if tontine.status != 'draft':
                raise InvalidTransition("Only a draft tontine can be edited", status=tontine.status)

            data = model_to_dict(tontine, fields=TontineService.EDITABLE_FIELDS)
            data.update(changes)
            form = TontineForm(data=data, instance=tontine)
            if not form.is_valid():
                raise ValidationError("Invalid tontine settings", errors=TontineService._form_errors(form))
            if tontine.max_participants and tontine.participant_count() > tontine.max_participants:
                raise ValidationError(
                    "Maximum participants is lower than the current number of participants",
                    errors={'max_participants': 'too_low'}
                )

        tontine_repository.run_atomic(tontine_id, operation)
        logger.info(f"Tontine {tontine_id} edited by {actor.username}: {sorted(changes)}")
        return tontine_repository.load(tontine_id)

    @staticmethod
    def delete_tontine(tontine_id, actor):
        """Delete a draft; participants are told it will not happen"""

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if tontine.status != 'draft':
                raise InvalidTransition("Only a draft tontine can be deleted", status=tontine.status)

            name = tontine.name
            for participant in participants_of(tontine):
                NotificationHelper.notify_custom(
                    outbox,
                    user=participant.user,
                    title=f"{name} cancelled",
                    message=f"The initiator deleted {name} before it started.",
                )
            tontine_repository.delete(tontine)

        tontine_repository.run_atomic(tontine_id, operation)

    @staticmethod
    def start_tontine(tontine_id, actor, rng=None):
        """
        Freeze the payout order and open cycle 1.

        Random order is drawn here, once. `rng` can be a seeded
        random.Random for reproducible draws.
        """

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if tontine.status != 'draft':
                raise InvalidTransition("Only a draft tontine can be started", status=tontine.status)

            participants = participants_of(tontine)
            minimum = max(2, int(config.TONTINE_MIN_PARTICIPANTS))
            if len(participants) < minimum:
                raise InvalidTransition(
                    f"At least {minimum} participants are needed to start",
                    participants=len(participants),
                )
            if tontine.max_participants and len(participants) > tontine.max_participants:
                raise InvalidTransition("Too many participants for this tontine")

            ordered = number_positions(assign_positions(participants, tontine.order_type, rng=rng))
            Participant.objects.bulk_update(ordered, ['position'])

            tontine.current_cycle = 1
            tontine.status = 'active'
            tontine.started_at = timezone.now()

            beneficiary = ordered[0]
            first_due_date = due_date_for(tontine, 1)
            for participant in ordered:
                NotificationHelper.notify_tontine_started(outbox, tontine, participant, beneficiary, first_due_date)
            NotificationHelper.notify_payout_ready(outbox, tontine, beneficiary)

            logger.info(
                f"✅ Tontine {tontine.name} started with {len(ordered)} participants "
                f"({tontine.order_type} order), first beneficiary {beneficiary.user.username}"
            )

        tontine_repository.run_atomic(tontine_id, operation)
        return tontine_repository.load(tontine_id)

    @staticmethod
    def suspend_tontine(tontine_id, actor):
        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if tontine.status != 'active':
                raise InvalidTransition("Only an active tontine can be suspended", status=tontine.status)
            tontine.status = 'suspended'
            for participant in participants_of(tontine):
                NotificationHelper.notify_tontine_suspended(outbox, tontine, participant.user)
            logger.info(f"Tontine {tontine.name} suspended at cycle {tontine.current_cycle}")

        tontine_repository.run_atomic(tontine_id, operation)
        return tontine_repository.load(tontine_id)

    @staticmethod
    def resume_tontine(tontine_id, actor):
        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if tontine.status != 'suspended':
                raise InvalidTransition("Only a suspended tontine can be resumed", status=tontine.status)
            tontine.status = 'active'
            for participant in participants_of(tontine):
                NotificationHelper.notify_tontine_resumed(outbox, tontine, participant.user)
            logger.info(f"Tontine {tontine.name} resumed at cycle {tontine.current_cycle}")

        tontine_repository.run_atomic(tontine_id, operation)
        return tontine_repository.load(tontine_id)

    @staticmethod
    def advance_in_place(tontine, outbox):
        """
        Close the current cycle of a locked tontine.

        Must run inside run_atomic(); the caller's save persists the
        tontine row.
        """
        if tontine.status != 'active':
            raise InvalidTransition("Only an active tontine can advance", status=tontine.status)

        outstanding = PaymentService.outstanding_contributors(tontine)
        if outstanding:
            names = ', '.join(p.display_name for p in outstanding)
            raise InvalidTransition(
                f"Cycle {tontine.current_cycle} is not settled, waiting for: {names}",
                outstanding=[str(p.pk) for p in outstanding],
            )

        now = timezone.now()
        beneficiary = TontineService.get_beneficiary(tontine)
        if beneficiary is not None:
            beneficiary.has_received_payout = True
            beneficiary.payout_received_at = now
            beneficiary.save(update_fields=['has_received_payout', 'payout_received_at', 'updated_at'])

        closed_cycle = tontine.current_cycle
        tontine.current_cycle += 1
        participants = participants_of(tontine)

        if tontine.current_cycle > len(participants):
            tontine.status = 'completed'
            tontine.completed_at = now
            recipients = [p.user for p in participants]
            if tontine.initiator not in recipients:
                recipients.append(tontine.initiator)
            for user in recipients:
                NotificationHelper.notify_tontine_completed(outbox, tontine, user)
            logger.info(f"🎉 Tontine {tontine.name} completed after {closed_cycle} cycles")
            return tontine

        due_date = due_date_for(tontine)
        for participant in participants:
            NotificationHelper.notify_cycle_advanced(outbox, tontine, participant, due_date)
        NotificationHelper.notify_payout_ready(outbox, tontine, TontineService.get_beneficiary(tontine))
        logger.info(f"Tontine {tontine.name} advanced from cycle {closed_cycle} to {tontine.current_cycle}")
        return tontine

    @staticmethod
    def advance_cycle(tontine_id, actor):
        """Initiator closes the current cycle once every contribution is confirmed"""

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            TontineService.advance_in_place(tontine, outbox)

        tontine_repository.run_atomic(tontine_id, operation)
        return tontine_repository.load(tontine_id)

    @staticmethod
    def get_beneficiary(tontine):
        return tontine.get_current_beneficiary()
