"""
Data access for the tontine aggregate.

A tontine, its participants and their payments are read and written as one
unit. Writers go through TontineRepository.run_atomic(), which loads the
aggregate under a row lock, lets the caller mutate it, and saves it with a
compare-and-swap on Tontine.version. Backends without row locks (SQLite)
still get serialised writes through the version check.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F, Prefetch
from django.utils import timezone
import logging

from constance import config

from notifications.utils import NotificationOutbox

from .exceptions import ConcurrencyConflict, NotFound
from .models import Tontine, Participant

logger = logging.getLogger(__name__)

# Fields the compare-and-swap never writes directly
_UNMANAGED_FIELDS = {'id', 'version', 'created_at', 'updated_at'}


class TontineRepository:
    """Load, save, delete and query tontine aggregates"""

    def _base_queryset(self):
        return Tontine.objects.prefetch_related(
            Prefetch('participants', queryset=Participant.objects.select_related('user'))
        )

    def load(self, tontine_id, lock=False):
        """
        Return the tontine with its participants prefetched.

        lock=True takes a row lock for the rest of the current transaction.
        """
        queryset = self._base_queryset()
        if lock:
            queryset = queryset.select_for_update()
        else:
            queryset = queryset.select_related('initiator')

        try:
            return queryset.get(pk=tontine_id)
        except (Tontine.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFound(f"Tontine {tontine_id} not found", tontine_id=str(tontine_id))

    def get_by_invite_code(self, invite_code):
        code = (invite_code or '').strip().upper()
        if not code:
            raise NotFound("An invite code is required")
        try:
            return self._base_queryset().get(invite_code=code)
        except Tontine.DoesNotExist:
            raise NotFound(f"No tontine uses invite code {code}", invite_code=code)

    def add(self, tontine):
        """Insert a brand new tontine"""
        tontine.version = 0
        tontine.save(force_insert=True)
        return tontine

    def save(self, tontine):
        """
        Write the tontine row if nobody else changed it since it was loaded.

        Child rows (participants, payments, audit entries) are written by
        the services inside the same transaction, so a failed swap rolls
        them back too.
        """
        if getattr(tontine, '_deleted', False):
            return tontine

        now = timezone.now()
        values = {
            field.attname: getattr(tontine, field.attname)
            for field in Tontine._meta.concrete_fields
            if field.attname not in _UNMANAGED_FIELDS
        }
        updated = Tontine.objects.filter(pk=tontine.pk, version=tontine.version).update(
            version=F('version') + 1,
            updated_at=now,
            **values
        )
        if not updated:
            raise ConcurrencyConflict(
                f"Tontine {tontine.pk} was modified concurrently",
                tontine_id=str(tontine.pk),
                version=tontine.version,
            )

        tontine.version += 1
        tontine.updated_at = now
        return tontine

    def delete(self, tontine):
        """Delete the tontine if it still has the version that was loaded"""
        deleted, _ = Tontine.objects.filter(pk=tontine.pk, version=tontine.version).delete()
        if not deleted:
            raise ConcurrencyConflict(
                f"Tontine {tontine.pk} was modified concurrently",
                tontine_id=str(tontine.pk),
            )
        tontine._deleted = True
        logger.info(f"Tontine {tontine.pk} deleted")

    def query(self, initiator=None, member=None, status=None, invite_code=None):
        """
        Filter tontines.

        initiator: user who created them
        member: user taking part as a participant
        status: one status or an iterable of statuses
        """
        queryset = self._base_queryset().select_related('initiator')
        if initiator is not None:
            queryset = queryset.filter(initiator=initiator)
        if member is not None:
            queryset = queryset.filter(participants__user=member)
        if status:
            if isinstance(status, str):
                queryset = queryset.filter(status=status)
            else:
                queryset = queryset.filter(status__in=list(status))
        if invite_code:
            queryset = queryset.filter(invite_code=invite_code.strip().upper())
        return queryset.distinct().order_by('-created_at')

    def run_atomic(self, tontine_id, operation):
        """
        Apply `operation(tontine, outbox)` as one atomic aggregate update.

        The attempt is retried from a fresh read when the version check
        fails, up to TONTINE_CONFLICT_RETRIES times. Notifications queued in
        the outbox are emitted only after a successful commit.
        """
        attempts = max(1, int(config.TONTINE_CONFLICT_RETRIES))

        for attempt in range(1, attempts + 1):
            outbox = NotificationOutbox()
            try:
                with transaction.atomic():
                    tontine = self.load(tontine_id, lock=True)
                    result = operation(tontine, outbox)
                    self.save(tontine)
            except ConcurrencyConflict:
                logger.warning(
                    f"Concurrent update on tontine {tontine_id} "
                    f"(attempt {attempt}/{attempts}), retrying"
                )
                continue

            outbox.flush()
            return result

        logger.error(f"Giving up on tontine {tontine_id} after {attempts} conflicting attempts")
        raise ConcurrencyConflict(
            f"Tontine {tontine_id} is being modified by someone else, please try again",
            tontine_id=str(tontine_id),
            attempts=attempts,
        )


tontine_repository = TontineRepository()
