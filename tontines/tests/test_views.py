from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone
from datetime import timedelta
import json

from tontines.models import Tontine, Payment
from tontines.services import PaymentService

from .base import TontineTestMixin, IN_MEMORY_STORAGES, make_proof, transfer_details


class TontineViewsTest(TontineTestMixin, TestCase):
    """JSON endpoints and their error mapping"""

    def setUp(self):
        super().setUp()
        self.client = Client()
        self.client.force_login(self.initiator)

    def post_json(self, url, data=None, client=None):
        return (client or self.client).post(url, data=json.dumps(data or {}), content_type='application/json')

    def login_as(self, user):
        client = Client()
        client.force_login(user)
        return client

    def test_login_required(self):
        response = Client().get(reverse('tontines:tontine_list'))
        self.assertEqual(response.status_code, 302)

    def test_create_and_list(self):
        response = self.post_json(reverse('tontines:tontine_list'), {
            'name': 'Tontine des Amis',
            'amount': '25000',
            'frequency': 'weekly',
            'start_date': str(timezone.localdate() + timedelta(days=2)),
            'order_type': 'random',
            'gain_type': 'money',
        })

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['tontine']['status'], 'draft')
        self.assertEqual(body['tontine']['current_cycle'], 0)

        listing = self.client.get(reverse('tontines:tontine_list')).json()
        self.assertEqual([t['name'] for t in listing['created']], ['Tontine des Amis'])
        self.assertEqual(listing['joined'], [])

    def test_create_invalid_returns_400(self):
        response = self.post_json(reverse('tontines:tontine_list'), {
            'name': 'Bad', 'amount': '-5', 'frequency': 'custom',
            'start_date': str(timezone.localdate()), 'order_type': 'manual', 'gain_type': 'money',
        })
        self.assertEqual(response.status_code, 400)
        errors = response.json()['errors']
        self.assertIn('amount', errors)
        self.assertIn('custom_days', errors)

    def test_malformed_json_returns_400(self):
        response = self.client.post(
            reverse('tontines:tontine_list'), data='{not json', content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

    def test_unknown_tontine_returns_404(self):
        url = reverse('tontines:tontine_detail', kwargs={'tontine_id': '00000000-0000-0000-0000-000000000000'})
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_detail_restricted_to_members(self):
        tontine = self.create_tontine(members=1)
        url = reverse('tontines:tontine_detail', kwargs={'tontine_id': tontine.pk})

        self.assertEqual(self.client.get(url).status_code, 200)
        self.assertEqual(self.login_as(self.members[0]).get(url).status_code, 200)
        self.assertEqual(self.login_as(self.members[3]).get(url).status_code, 403)

    def test_join_by_code(self):
        tontine = self.create_tontine()
        client = self.login_as(self.members[0])

        response = self.post_json(reverse('tontines:join_tontine'), {'invite_code': tontine.invite_code.lower()}, client)

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['participant']['position'], 1)

    def test_join_unknown_code_returns_404(self):
        client = self.login_as(self.members[0])
        response = self.post_json(reverse('tontines:join_tontine'), {'invite_code': 'ZZZZZZ'}, client)
        self.assertEqual(response.status_code, 404)

    def test_start_with_one_participant_returns_409(self):
        tontine = self.create_tontine(members=1)
        response = self.client.post(reverse('tontines:tontine_start', kwargs={'tontine_id': tontine.pk}))
        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.json()['success'])

    def test_start_by_member_returns_403(self):
        tontine = self.create_tontine(members=2)
        client = self.login_as(self.members[0])
        response = client.post(reverse('tontines:tontine_start', kwargs={'tontine_id': tontine.pk}))
        self.assertEqual(response.status_code, 403)

    def test_start_suspend_resume(self):
        tontine = self.create_tontine(members=3)
        kwargs = {'tontine_id': tontine.pk}

        started = self.client.post(reverse('tontines:tontine_start', kwargs=kwargs)).json()
        self.assertEqual(started['tontine']['status'], 'active')
        self.assertEqual(started['tontine']['current_cycle'], 1)

        suspended = self.client.post(reverse('tontines:tontine_suspend', kwargs=kwargs)).json()
        self.assertEqual(suspended['tontine']['status'], 'suspended')

        resumed = self.client.post(reverse('tontines:tontine_resume', kwargs=kwargs)).json()
        self.assertEqual(resumed['tontine']['status'], 'active')

    def test_get_not_allowed_on_actions(self):
        tontine = self.create_tontine(members=2)
        response = self.client.get(reverse('tontines:tontine_start', kwargs={'tontine_id': tontine.pk}))
        self.assertEqual(response.status_code, 405)

    def test_edit_and_delete(self):
        tontine = self.create_tontine()
        kwargs = {'tontine_id': tontine.pk}

        edited = self.post_json(reverse('tontines:tontine_edit', kwargs=kwargs), {'name': 'New name'})
        self.assertEqual(edited.json()['tontine']['name'], 'New name')

        not_editable = self.post_json(reverse('tontines:tontine_edit', kwargs=kwargs), {'invite_code': 'ABC'})
        self.assertEqual(not_editable.status_code, 400)

        deleted = self.client.post(reverse('tontines:tontine_delete', kwargs=kwargs))
        self.assertEqual(deleted.status_code, 200)
        self.assertFalse(Tontine.objects.filter(pk=tontine.pk).exists())

    def test_form_edit_with_csrf_token(self):
        tontine = self.create_tontine()
        client = Client(enforce_csrf_checks=True)
        client.force_login(self.initiator)
        token = 'a' * 32
        client.cookies[settings.CSRF_COOKIE_NAME] = token

        response = client.post(
            reverse('tontines:tontine_edit', kwargs={'tontine_id': tontine.pk}),
            {'name': 'Renamed', 'csrfmiddlewaretoken': token}
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['tontine']['name'], 'Renamed')

    def test_reorder_and_remove(self):
        tontine = self.create_tontine(members=3)
        a, b, c = tontine.participants.order_by('position')
        kwargs = {'tontine_id': tontine.pk}

        response = self.post_json(
            reverse('tontines:reorder_participants', kwargs=kwargs),
            {'participant_ids': [str(c.pk), str(b.pk), str(a.pk)]}
        )
        self.assertEqual(response.status_code, 200)
        positions = {p['id']: p['position'] for p in response.json()['tontine']['participants']}
        self.assertEqual(positions[str(c.pk)], 1)

        response = self.client.post(reverse(
            'tontines:remove_participant', kwargs={'tontine_id': tontine.pk, 'participant_id': b.pk}
        ))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            sorted(p['position'] for p in response.json()['tontine']['participants']),
            [1, 2]
        )

    def test_add_participant(self):
        tontine = self.create_tontine()
        response = self.post_json(
            reverse('tontines:add_participant', kwargs={'tontine_id': tontine.pk}),
            {'user_id': self.members[0].pk}
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(tontine.participants.get().user, self.members[0])

    def test_schedule(self):
        tontine = self.start_tontine(members=3)
        response = self.client.get(reverse('tontines:tontine_schedule', kwargs={'tontine_id': tontine.pk}))

        schedule = response.json()['schedule']
        self.assertEqual([row['cycle'] for row in schedule], [1, 2, 3])
        self.assertTrue(schedule[0]['is_current'])


@override_settings(STORAGES=IN_MEMORY_STORAGES)
class PaymentViewsTest(TontineTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.tontine = self.start_tontine(members=3)
        self.contributor = self.contributors_of(self.tontine)[0]
        self.initiator_client = Client()
        self.initiator_client.force_login(self.initiator)
        self.contributor_client = Client()
        self.contributor_client.force_login(self.contributor.user)

    def url(self, name):
        return reverse(f'tontines:{name}', kwargs={
            'tontine_id': self.tontine.pk,
            'participant_id': self.contributor.pk,
        })

    def test_mark_paid_upload(self):
        data = transfer_details()
        data['proof'] = SimpleUploadedFile('receipt.pdf', b'%PDF-1.4 fake', content_type='application/pdf')

        response = self.contributor_client.post(self.url('mark_paid'), data)

        self.assertEqual(response.status_code, 200)
        payment = response.json()['payment']
        self.assertEqual(payment['status'], 'participant_paid')
        self.assertEqual(payment['audit_log'][0]['action'], 'participant_marked_paid')

    def test_mark_paid_without_file_returns_400(self):
        response = self.contributor_client.post(self.url('mark_paid'), transfer_details())
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Payment.objects.exists())

    def test_validate_and_overview(self):
        PaymentService.mark_paid(self.tontine.pk, self.contributor.pk, self.contributor.user, make_proof())

        response = self.initiator_client.post(self.url('validate_payment'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['payment']['status'], 'confirmed')

        overview = self.initiator_client.get(
            reverse('tontines:cycle_overview', kwargs={'tontine_id': self.tontine.pk})
        ).json()
        statuses = {state['participant_id']: state['status'] for state in overview['states']}
        self.assertEqual(statuses[str(self.contributor.pk)], 'confirmed')
        self.assertFalse(overview['settled'])

    def test_validate_without_submission_returns_409(self):
        response = self.initiator_client.post(self.url('validate_payment'))
        self.assertEqual(response.status_code, 409)

    def test_reject_requires_reason(self):
        PaymentService.mark_paid(self.tontine.pk, self.contributor.pk, self.contributor.user, make_proof())

        response = self.initiator_client.post(self.url('reject_payment'), {'reason': ''})
        self.assertEqual(response.status_code, 400)

        response = self.initiator_client.post(self.url('reject_payment'), {'reason': 'Wrong amount'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['payment']['rejection_reason'], 'Wrong amount')

    def test_payment_history(self):
        PaymentService.mark_paid(self.tontine.pk, self.contributor.pk, self.contributor.user, make_proof())
        response = self.contributor_client.get(self.url('payment_history'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['payments']), 1)

    def test_advance_blocked_returns_409(self):
        response = self.initiator_client.post(
            reverse('tontines:tontine_advance', kwargs={'tontine_id': self.tontine.pk})
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(len(response.json()['context']['outstanding']), 2)
