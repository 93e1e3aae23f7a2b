"""
Rotation scheduling: due dates and payout order.

Everything here is a pure function over dates and participant lists.
Callers persist the results; nothing in this module touches the database.
"""

import calendar
import random
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from .exceptions import InvalidFrequency, ValidationError


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def next_due_date(start_date, frequency, custom_days, cycle, fixed_payment_day=None):
    """
    Due date of `cycle` for a tontine starting on `start_date`.

    daily   -> start + cycle days
    weekly  -> start + cycle weeks
    monthly -> start + cycle calendar months (Jan 31 + 1 month = Feb 28/29)
    custom  -> start + cycle * custom_days days

    For monthly tontines `fixed_payment_day` pins the day of the month,
    clamped to the length of the target month.
    """
    if cycle is None or cycle < 0:
        raise ValidationError("Cycle must be zero or a positive integer", errors={'cycle': 'invalid'})

    start = _as_date(start_date)

    if frequency == 'daily':
        return start + timedelta(days=cycle)
    if frequency == 'weekly':
        return start + timedelta(weeks=cycle)
    if frequency == 'monthly':
        due = start + relativedelta(months=cycle)
        if fixed_payment_day:
            last_day = calendar.monthrange(due.year, due.month)[1]
            due = due.replace(day=min(fixed_payment_day, last_day))
        return due
    if frequency == 'custom':
        if not custom_days or custom_days <= 0:
            raise InvalidFrequency(
                "Custom frequency requires a positive number of days",
                errors={'custom_days': 'required'}
            )
        return start + timedelta(days=cycle * custom_days)

    raise InvalidFrequency(f"Unknown frequency: {frequency!r}", errors={'frequency': 'invalid'})


def due_date_for(tontine, cycle=None):
    """next_due_date() using a tontine's own configuration"""
    if cycle is None:
        cycle = tontine.current_cycle
    return next_due_date(
        tontine.start_date,
        tontine.frequency,
        tontine.custom_days,
        cycle,
        tontine.fixed_payment_day,
    )


def fair_shuffle(items, rng=None):
    """
    Fisher-Yates shuffle of a copy of `items`.

    Every permutation is equally likely. Pass a seeded random.Random to
    make the result reproducible.
    """
    rng = rng or random.SystemRandom()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def _rotation_key(participant):
    return (participant.position, participant.joined_at)


def assign_positions(participants, order_type, rng=None):
    """
    Return participants in payout order without modifying them.

    manual: current order, i.e. join order unless the initiator reordered
    random: one fair shuffle, done once when the tontine starts
    """
    ordered = sorted(participants, key=_rotation_key)

    if order_type == 'manual':
        return ordered
    if order_type == 'random':
        return fair_shuffle(ordered, rng=rng)

    raise ValidationError(f"Unknown order type: {order_type!r}", errors={'order_type': 'invalid'})


def compact_positions(participants):
    """Survivors of a removal, relative order kept, ready to renumber"""
    return sorted(participants, key=_rotation_key)


def number_positions(ordered):
    """Write positions 1..N onto `ordered`, in list order"""
    for position, participant in enumerate(ordered, start=1):
        participant.position = position
    return ordered


def is_dense_permutation(positions):
    """True when positions are exactly 1..N with no gaps or duplicates"""
    positions = list(positions)
    return sorted(positions) == list(range(1, len(positions) + 1))


def rotation_schedule(tontine, participants=None):
    """
    One row per cycle: due date and the participant collecting the pool.

    Only meaningful once positions are final (after start()).
    """
    if participants is None:
        participants = list(tontine.participants.all())
    ordered = sorted(participants, key=_rotation_key)

    schedule = []
    for participant in ordered:
        cycle = participant.position
        schedule.append({
            'cycle': cycle,
            'due_date': due_date_for(tontine, cycle),
            'beneficiary': participant,
            'is_current': tontine.is_running() and cycle == tontine.current_cycle,
        })
    return schedule
