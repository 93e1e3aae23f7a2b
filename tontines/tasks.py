from celery import shared_task
from django.utils import timezone
import logging

from constance import config

from notifications.helpers import NotificationHelper

from .repository import tontine_repository
from .services import PaymentService
from .services.payment_service import OWED_STATUSES

logger = logging.getLogger(__name__)


# ========================================
# PAYMENT REMINDERS
# ========================================

def send_reminders_for(tontine, now=None):
    """
    Remind contributors of one tontine about the current cycle.

    Contributions due within TONTINE_REMINDER_DAYS get a 'due soon'
    reminder, overdue ones an overdue notice. Payment status is never
    changed here.
    """
    now = now or timezone.now()
    today = timezone.localdate(now)
    window = int(config.TONTINE_REMINDER_DAYS)
    due_soon = overdue = 0

    for state in PaymentService.cycle_overview(tontine, now=now):
        if state.is_overdue:
            NotificationHelper.notify_payment_reminder(None, tontine, state.participant, state.due_date, overdue=True)
            overdue += 1
        elif state.status in OWED_STATUSES and 0 <= (state.due_date - today).days <= window:
            NotificationHelper.notify_payment_reminder(None, tontine, state.participant, state.due_date)
            due_soon += 1

    return due_soon, overdue


@shared_task(name='tontines.send_payment_reminders')
def send_payment_reminders():
    """
    Sweep active tontines and remind participants of their contribution.

    Triggered by an operator (beat schedule or `manage.py tontine_reminders`).
    """
    logger.info("TASK: send_payment_reminders - STARTED")

    now = timezone.now()
    totals = {'tontines': 0, 'due_soon': 0, 'overdue': 0, 'failed': 0}

    for tontine in tontine_repository.query(status='active'):
        try:
            due_soon, overdue = send_reminders_for(tontine, now=now)
        except Exception as e:
            logger.error(f"❌ Reminders failed for tontine {tontine.pk}: {e}", exc_info=True)
            totals['failed'] += 1
            continue
        totals['tontines'] += 1
        totals['due_soon'] += due_soon
        totals['overdue'] += overdue

    logger.info(
        f"TASK: send_payment_reminders - COMPLETED "
        f"({totals['tontines']} tontines, {totals['due_soon']} due soon, {totals['overdue']} overdue)"
    )
    return totals
