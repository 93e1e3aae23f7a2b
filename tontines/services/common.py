from django.core.exceptions import PermissionDenied
import uuid

from ..exceptions import NotFound, ValidationError


def require_initiator(tontine, user):
    """Only the tontine's initiator may manage it"""
    if user is None or tontine.initiator_id != user.pk:
        raise PermissionDenied("Only the initiator can perform this action")


def participants_of(tontine):
    """Participants of a loaded tontine in rotation order"""
    return sorted(tontine.participants.all(), key=lambda p: (p.position, p.joined_at))


def parse_uuid(value, field='id'):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid identifier: {value!r}", errors={field: 'invalid'})


def find_participant(tontine, participant_id):
    """Participant of this tontine with the given id"""
    wanted = parse_uuid(participant_id, field='participant_id')
    for participant in tontine.participants.all():
        if participant.pk == wanted:
            return participant
    raise NotFound(
        f"Participant {participant_id} is not part of {tontine.name}",
        participant_id=str(participant_id),
    )
