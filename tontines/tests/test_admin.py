from django.contrib.admin.sites import AdminSite
from django.contrib.auth.models import User
from django.test import TestCase, RequestFactory

from tontines.admin import TontineAdmin, ParticipantInline, ParticipantAdmin
from tontines.models import Tontine, Participant

from .base import TontineTestMixin


class TontineAdminTest(TontineTestMixin, TestCase):
    """Admin edits keep the lifecycle and the version check"""

    def setUp(self):
        super().setUp()
        self.site = AdminSite()
        self.admin = TontineAdmin(Tontine, self.site)
        self.request = RequestFactory().post('/admin/')
        self.request.user = User.objects.create_superuser('root', 'root@example.com', 'testpass123')

    def test_status_and_cycle_are_read_only(self):
        tontine = self.start_tontine(members=2)
        readonly = self.admin.get_readonly_fields(self.request, tontine)

        self.assertIn('status', readonly)
        self.assertIn('current_cycle', readonly)
        self.assertIn('order_type', readonly)

    def test_draft_keeps_rotation_settings_editable(self):
        tontine = self.create_tontine()
        readonly = self.admin.get_readonly_fields(self.request, tontine)

        self.assertIn('status', readonly)
        self.assertNotIn('order_type', readonly)

    def test_save_can_not_reopen_completed_tontine(self):
        tontine = self.start_tontine(members=2)
        Tontine.objects.filter(pk=tontine.pk).update(status='completed', current_cycle=3)

        obj = Tontine.objects.get(pk=tontine.pk)
        version = obj.version
        obj.status = 'draft'
        obj.current_cycle = 0
        obj.name = 'Renamed by operator'
        self.admin.save_model(self.request, obj, None, True)

        obj = Tontine.objects.get(pk=tontine.pk)
        self.assertEqual((obj.status, obj.current_cycle), ('completed', 3))
        self.assertEqual(obj.name, 'Renamed by operator')
        self.assertEqual(obj.version, version + 1)

    def test_add_generates_invite_code(self):
        obj = Tontine(**self.tontine_data(), initiator=self.initiator)
        self.admin.save_model(self.request, obj, None, False)

        self.assertEqual(len(obj.invite_code), 6)
        self.assertEqual(Tontine.objects.get(pk=obj.pk).version, 0)

    def test_participants_can_not_be_added_or_deleted(self):
        tontine = self.start_tontine(members=2)
        inline = ParticipantInline(Tontine, self.site)
        participant_admin = ParticipantAdmin(Participant, self.site)

        self.assertFalse(inline.has_add_permission(self.request, tontine))
        self.assertFalse(inline.can_delete)
        self.assertFalse(participant_admin.has_add_permission(self.request))
        self.assertFalse(participant_admin.has_delete_permission(self.request))
        self.assertIn('position', participant_admin.get_readonly_fields(self.request))
