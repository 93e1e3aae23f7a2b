from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from functools import wraps
import json
import logging

from .exceptions import (
    ConcurrencyConflict, InvalidTransition, NotFound, TontineError, ValidationError
)
from .forms import JoinTontineForm, RejectPaymentForm
from .repository import tontine_repository
from .rotation import rotation_schedule
from .serializers import (
    TontineSerializer, ParticipantSerializer, PaymentSerializer,
    PaymentStateSerializer, ScheduleEntrySerializer
)
from .services import TontineService, ParticipantService, PaymentService
from .services.common import find_participant

logger = logging.getLogger(__name__)


def _error(message, status, **extra):
    payload = {'success': False, 'error': message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def json_errors(view):
    """Translate service exceptions into JSON error responses"""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ValidationError as e:
            return _error(e.message, 400, errors=e.errors)
        except PermissionDenied as e:
            return _error(str(e) or "Permission denied", 403)
        except NotFound as e:
            return _error(e.message, 404)
        except (InvalidTransition, ConcurrencyConflict) as e:
            return _error(e.message, 409, context=_jsonable(e.context))
        except TontineError as e:
            logger.error(f"❌ {view.__name__} failed: {e.message}")
            return _error(e.message, 500)

    return wrapper


def _jsonable(context):
    return {key: value if isinstance(value, (int, list, type(None))) else str(value) for key, value in context.items()}


def _request_data(request):
    """JSON body or form fields, whichever the client sent"""
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            raise ValidationError("Request body is not valid JSON", errors={'body': 'invalid_json'})
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", errors={'body': 'invalid_json'})
        return data
    data = request.POST.dict()
    data.pop('csrfmiddlewaretoken', None)
    return data


def _require_member(tontine, user):
    """Initiator or participant"""
    if tontine.initiator_id == user.pk:
        return
    if any(p.user_id == user.pk for p in tontine.participants.all()):
        return
    raise PermissionDenied("You are not part of this tontine")


def _tontine_response(tontine, status=200, **extra):
    payload = {'success': True, 'tontine': TontineSerializer(tontine).data}
    payload.update(extra)
    return JsonResponse(payload, status=status)


# ========================================
# TONTINES
# ========================================

@login_required
@require_http_methods(["GET", "POST"])
@json_errors
def tontine_list(request):
    """GET: tontines the user created or joined. POST: create a draft."""
    if request.method == 'POST':
        tontine = TontineService.create_tontine(request.user, _request_data(request))
        return _tontine_response(tontine, status=201)

    status = request.GET.get('status') or None
    created = tontine_repository.query(initiator=request.user, status=status)
    joined = tontine_repository.query(member=request.user, status=status)
    return JsonResponse({
        'created': TontineSerializer(created, many=True).data,
        'joined': TontineSerializer(joined, many=True).data,
    })


@login_required
@require_http_methods(["GET"])
@json_errors
def tontine_detail(request, tontine_id):
    tontine = tontine_repository.load(tontine_id)
    _require_member(tontine, request.user)
    return _tontine_response(tontine)


@login_required
@require_http_methods(["POST"])
@json_errors
def tontine_edit(request, tontine_id):
    tontine = TontineService.edit_tontine(tontine_id, request.user, _request_data(request))
    return _tontine_response(tontine)


@login_required
@require_http_methods(["POST"])
@json_errors
def tontine_delete(request, tontine_id):
    TontineService.delete_tontine(tontine_id, request.user)
    return JsonResponse({'success': True})


@login_required
@require_http_methods(["POST"])
@json_errors
def tontine_start(request, tontine_id):
    tontine = TontineService.start_tontine(tontine_id, request.user)
    return _tontine_response(tontine)


@login_required
@require_http_methods(["POST"])
@json_errors
def tontine_suspend(request, tontine_id):
    tontine = TontineService.suspend_tontine(tontine_id, request.user)
    return _tontine_response(tontine)


@login_required
@require_http_methods(["POST"])
@json_errors
def tontine_resume(request, tontine_id):
    tontine = TontineService.resume_tontine(tontine_id, request.user)
    return _tontine_response(tontine)


@login_required
@require_http_methods(["POST"])
@json_errors
def tontine_advance(request, tontine_id):
    tontine = TontineService.advance_cycle(tontine_id, request.user)
    return _tontine_response(tontine)


@login_required
@require_http_methods(["GET"])
@json_errors
def tontine_schedule(request, tontine_id):
    """Payout rotation with due dates"""
    tontine = tontine_repository.load(tontine_id)
    _require_member(tontine, request.user)
    return JsonResponse({
        'schedule': ScheduleEntrySerializer(rotation_schedule(tontine), many=True).data,
    })


@login_required
@require_http_methods(["GET"])
@json_errors
def cycle_overview(request, tontine_id):
    """Contribution state of the current cycle, overdue flags included"""
    tontine = tontine_repository.load(tontine_id)
    _require_member(tontine, request.user)
    beneficiary = tontine.get_current_beneficiary()
    return JsonResponse({
        'cycle': tontine.current_cycle,
        'beneficiary': str(beneficiary.pk) if beneficiary else None,
        'settled': PaymentService.is_cycle_settled(tontine),
        'states': PaymentStateSerializer(PaymentService.cycle_overview(tontine), many=True).data,
    })


# ========================================
# PARTICIPANTS
# ========================================

@login_required
@require_http_methods(["POST"])
@json_errors
def join_tontine(request):
    form = JoinTontineForm(_request_data(request))
    if not form.is_valid():
        raise ValidationError("An invite code is required", errors=form.errors.get_json_data())
    participant = ParticipantService.join(form.cleaned_data['invite_code'], request.user)
    return JsonResponse({
        'success': True,
        'tontine_id': str(participant.tontine_id),
        'participant': ParticipantSerializer(participant).data,
    }, status=201)


@login_required
@require_http_methods(["POST"])
@json_errors
def add_participant(request, tontine_id):
    user_id = _request_data(request).get('user_id')
    if not user_id:
        raise ValidationError("user_id is required", errors={'user_id': 'required'})
    participant = ParticipantService.add_participant(tontine_id, request.user, user_id)
    return JsonResponse({'success': True, 'participant': ParticipantSerializer(participant).data}, status=201)


@login_required
@require_http_methods(["POST"])
@json_errors
def remove_participant(request, tontine_id, participant_id):
    ParticipantService.remove_participant(tontine_id, request.user, participant_id)
    return _tontine_response(tontine_repository.load(tontine_id))


@login_required
@require_http_methods(["POST"])
@json_errors
def reorder_participants(request, tontine_id):
    ordered_ids = _request_data(request).get('participant_ids')
    if isinstance(ordered_ids, str):
        ordered_ids = [value for value in ordered_ids.split(',') if value]
    if not isinstance(ordered_ids, list):
        raise ValidationError("participant_ids must be a list", errors={'participant_ids': 'required'})
    ParticipantService.reorder(tontine_id, request.user, ordered_ids)
    return _tontine_response(tontine_repository.load(tontine_id))


# ========================================
# PAYMENTS
# ========================================

@login_required
@require_http_methods(["POST"])
@json_errors
def mark_paid(request, tontine_id, participant_id):
    """Multipart upload: `proof` file plus the transfer details"""
    transfer_data = request.POST.dict()
    payment = PaymentService.submit_proof(
        tontine_id,
        participant_id,
        request.user,
        request.FILES.get('proof'),
        transfer_data,
    )
    return JsonResponse({'success': True, 'payment': PaymentSerializer(payment).data})


@login_required
@require_http_methods(["POST"])
@json_errors
def validate_payment(request, tontine_id, participant_id):
    payment = PaymentService.validate(tontine_id, participant_id, request.user)
    return JsonResponse({'success': True, 'payment': PaymentSerializer(payment).data})


@login_required
@require_http_methods(["POST"])
@json_errors
def reject_payment(request, tontine_id, participant_id):
    form = RejectPaymentForm(_request_data(request))
    if not form.is_valid():
        raise ValidationError("A reason is required to reject a payment", errors=form.errors.get_json_data())
    payment = PaymentService.reject(tontine_id, participant_id, request.user, form.cleaned_data['reason'])
    return JsonResponse({'success': True, 'payment': PaymentSerializer(payment).data})


@login_required
@require_http_methods(["GET"])
@json_errors
def payment_history(request, tontine_id, participant_id):
    """Every payment of a participant with its audit trail"""
    tontine = tontine_repository.load(tontine_id)
    _require_member(tontine, request.user)
    participant = find_participant(tontine, participant_id)
    return JsonResponse({
        'participant': ParticipantSerializer(participant).data,
        'payments': PaymentSerializer(PaymentService.payment_history(participant), many=True).data,
    })
