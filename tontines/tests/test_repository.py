from django.db.models import F
from django.test import TestCase

from constance.test import override_config

from notifications.models import Notification
from tontines.exceptions import ConcurrencyConflict, NotFound
from tontines.models import Tontine
from tontines.repository import tontine_repository

from .base import TontineTestMixin


class TontineRepositoryTest(TontineTestMixin, TestCase):
    """Aggregate loading and compare-and-swap saves"""

    def test_load_prefetches_participants(self):
        tontine = self.create_tontine(members=3)
        loaded = tontine_repository.load(tontine.pk)

        with self.assertNumQueries(0):
            self.assertEqual(len(loaded.participants.all()), 3)

    def test_load_unknown(self):
        with self.assertRaises(NotFound):
            tontine_repository.load('00000000-0000-0000-0000-000000000000')
        with self.assertRaises(NotFound):
            tontine_repository.load('not-a-uuid')

    def test_get_by_invite_code(self):
        tontine = self.create_tontine()
        self.assertEqual(tontine_repository.get_by_invite_code(tontine.invite_code.lower()).pk, tontine.pk)
        with self.assertRaises(NotFound):
            tontine_repository.get_by_invite_code('')

    def test_save_bumps_version(self):
        tontine = tontine_repository.load(self.create_tontine().pk)
        version = tontine.version
        tontine.name = 'Saved'

        tontine_repository.save(tontine)

        stored = Tontine.objects.get(pk=tontine.pk)
        self.assertEqual(stored.name, 'Saved')
        self.assertEqual(stored.version, version + 1)
        self.assertEqual(tontine.version, version + 1)

    def test_stale_save_conflicts(self):
        tontine = self.create_tontine()
        stale = tontine_repository.load(tontine.pk)
        Tontine.objects.filter(pk=tontine.pk).update(version=F('version') + 1)

        stale.name = 'Lost update'
        with self.assertRaises(ConcurrencyConflict):
            tontine_repository.save(stale)
        self.assertNotEqual(Tontine.objects.get(pk=tontine.pk).name, 'Lost update')

    def test_query_filters(self):
        draft = self.create_tontine(members=2, name='Draft one')
        active = self.start_tontine(members=3, name='Active one')

        self.assertEqual(list(tontine_repository.query(status='active')), [active])
        self.assertEqual(set(tontine_repository.query(initiator=self.initiator)), {draft, active})
        self.assertEqual(set(tontine_repository.query(member=self.members[2])), {active})
        self.assertEqual(set(tontine_repository.query(status=['draft', 'completed'])), {draft})
        self.assertEqual(list(tontine_repository.query(invite_code=draft.invite_code)), [draft])


class RunAtomicTest(TontineTestMixin, TestCase):
    """One attempt per transaction, retried on conflict"""

    def setUp(self):
        super().setUp()
        self.tontine = self.create_tontine()

    def test_retries_after_conflict(self):
        attempts = []

        def operation(tontine, outbox):
            attempts.append(tontine.version)
            tontine.name = 'Renamed'
            outbox.add(user=self.initiator, notification_type='general', title='Renamed', message='x')
            if len(attempts) == 1:
                # Another writer commits between our read and our write
                Tontine.objects.filter(pk=tontine.pk).update(version=F('version') + 1)
            return 'done'

        result = tontine_repository.run_atomic(self.tontine.pk, operation)

        self.assertEqual(result, 'done')
        self.assertEqual(len(attempts), 2)
        self.assertEqual(Tontine.objects.get(pk=self.tontine.pk).name, 'Renamed')
        self.assertEqual(Notification.objects.filter(title='Renamed').count(), 1)

    @override_config(TONTINE_CONFLICT_RETRIES=2)
    def test_gives_up_after_configured_attempts(self):
        attempts = []

        def operation(tontine, outbox):
            attempts.append(1)
            tontine.name = 'Never saved'
            outbox.add(user=self.initiator, notification_type='general', title='Never', message='x')
            Tontine.objects.filter(pk=tontine.pk).update(version=F('version') + 1)

        with self.assertRaises(ConcurrencyConflict):
            tontine_repository.run_atomic(self.tontine.pk, operation)

        self.assertEqual(len(attempts), 2)
        self.assertNotEqual(Tontine.objects.get(pk=self.tontine.pk).name, 'Never saved')
        self.assertFalse(Notification.objects.filter(title='Never').exists())

    def test_failed_operation_rolls_back_and_notifies_nobody(self):
        def operation(tontine, outbox):
            tontine.participants.create(user=self.members[0], position=1)
            outbox.add(user=self.initiator, notification_type='general', title='Rolled back', message='x')
            raise NotFound('boom')

        with self.assertRaises(NotFound):
            tontine_repository.run_atomic(self.tontine.pk, operation)

        self.assertFalse(self.tontine.participants.exists())
        self.assertFalse(Notification.objects.filter(title='Rolled back').exists())

    def test_different_tontines_do_not_interfere(self):
        other = self.create_tontine(name='Other')

        def operation(tontine, outbox):
            Tontine.objects.filter(pk=other.pk).update(version=F('version') + 1)
            tontine.name = 'First'

        tontine_repository.run_atomic(self.tontine.pk, operation)
        self.assertEqual(Tontine.objects.get(pk=self.tontine.pk).name, 'First')
