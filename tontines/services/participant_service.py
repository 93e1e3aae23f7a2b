from django.contrib.auth.models import User
import logging

from notifications.helpers import NotificationHelper

from ..exceptions import InvalidTransition, NotFound, ValidationError
from ..models import Participant
from ..repository import tontine_repository
from ..rotation import compact_positions, number_positions, is_dense_permutation
from .common import require_initiator, participants_of, find_participant, parse_uuid

logger = logging.getLogger(__name__)


class ParticipantService:
    """Membership of draft tontines and their payout order"""

    @staticmethod
    def _enroll(tontine, user, outbox):
        """Append `user` at position N+1 of a locked draft tontine"""
        if tontine.status != 'draft':
            raise InvalidTransition("Participants can only join a draft tontine", status=tontine.status)
        if user.pk == tontine.initiator_id:
            raise ValidationError(
                "The initiator manages the tontine and can not join it",
                errors={'user': 'initiator'}
            )

        participants = participants_of(tontine)
        if not is_dense_permutation(p.position for p in participants):
            logger.warning(f"Positions of {tontine.name} had gaps, renumbering before enrolling {user.username}")
            participants = number_positions(compact_positions(participants))
            Participant.objects.bulk_update(participants, ['position'])

        if any(p.user_id == user.pk for p in participants):
            raise ValidationError(
                f"{user.username} is already a participant",
                errors={'user': 'duplicate'}
            )
        if tontine.max_participants and len(participants) >= tontine.max_participants:
            raise InvalidTransition(
                f"{tontine.name} is full ({tontine.max_participants} participants)",
                max_participants=tontine.max_participants,
            )

        participant = Participant.objects.create(
            tontine=tontine,
            user=user,
            position=len(participants) + 1,
        )
        NotificationHelper.notify_participant_joined(outbox, tontine, participant)
        logger.info(f"{user.username} joined {tontine.name} at position {participant.position}")
        return participant

    @staticmethod
    def join(invite_code, user):
        """Join the draft tontine behind `invite_code` (case-insensitive)"""
        tontine = tontine_repository.get_by_invite_code(invite_code)
        return tontine_repository.run_atomic(
            tontine.pk,
            lambda locked, outbox: ParticipantService._enroll(locked, user, outbox)
        )

    @staticmethod
    def add_participant(tontine_id, actor, user):
        """Initiator enrolls a user directly; same rules as joining"""
        if not isinstance(user, User):
            try:
                user = User.objects.get(pk=user)
            except (User.DoesNotExist, ValueError, TypeError):
                raise NotFound(f"User {user} not found", user_id=str(user))

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            return ParticipantService._enroll(tontine, user, outbox)

        return tontine_repository.run_atomic(tontine_id, operation)

    @staticmethod
    def remove_participant(tontine_id, actor, participant_id):
        """
        Remove a participant from a draft and close the gap in positions.

        Allowed for the initiator and for the participant leaving.
        """

        def operation(tontine, outbox):
            participant = find_participant(tontine, participant_id)
            if actor is None or (actor.pk != tontine.initiator_id and actor.pk != participant.user_id):
                require_initiator(tontine, actor)
            if tontine.status != 'draft':
                raise InvalidTransition(
                    "Participants can only be removed before the tontine starts",
                    status=tontine.status,
                )

            survivors = [p for p in participants_of(tontine) if p.pk != participant.pk]
            user = participant.user
            participant.delete()

            renumbered = number_positions(compact_positions(survivors))
            Participant.objects.bulk_update(renumbered, ['position'])

            NotificationHelper.notify_participant_removed(outbox, tontine, user)
            logger.info(f"{user.username} removed from {tontine.name}, {len(renumbered)} participants left")
            return renumbered

        return tontine_repository.run_atomic(tontine_id, operation)

    @staticmethod
    def reorder(tontine_id, actor, ordered_ids):
        """Set the payout order of a draft from a full list of participant ids"""
        wanted = [parse_uuid(value, field='participant_ids') for value in ordered_ids]

        def operation(tontine, outbox):
            require_initiator(tontine, actor)
            if tontine.status != 'draft':
                raise InvalidTransition("Order can only change before the tontine starts", status=tontine.status)

            by_id = {p.pk: p for p in tontine.participants.all()}
            if len(wanted) != len(set(wanted)) or set(wanted) != set(by_id):
                raise ValidationError(
                    "The new order must list every participant exactly once",
                    errors={'participant_ids': 'not_a_permutation'}
                )

            ordered = number_positions([by_id[pk] for pk in wanted])
            Participant.objects.bulk_update(ordered, ['position'])
            logger.info(f"Payout order of {tontine.name} rearranged by {actor.username}")
            return ordered

        return tontine_repository.run_atomic(tontine_id, operation)
