from django.contrib.auth.models import User
from django.core import mail
from django.test import TestCase, Client
from django.urls import reverse
from unittest import mock

from notifications.helpers import NotificationHelper, format_amount
from notifications.models import Notification
from notifications.utils import (
    create_notification, NotificationOutbox, mark_all_as_read, get_unread_count
)
from tontines.models import Payment
from tontines.services import PaymentService
from tontines.tests.base import TontineTestMixin, make_proof
from TontineSpace.celery import app as celery_app


class CreateNotificationTest(TestCase):
    """Storing and delivering notifications"""

    def setUp(self):
        self.user = User.objects.create_user(
            username='testuser',
            email='testuser@example.com',
            password='testpass123'
        )

    def test_create_and_deliver(self):
        notification = create_notification(
            user=self.user,
            notification_type='general',
            title='Hello',
            message='Welcome to the tontine',
        )

        notification.refresh_from_db()
        self.assertFalse(notification.is_read)
        self.assertTrue(notification.is_sent)
        self.assertIsNotNone(notification.sent_at)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['testuser@example.com'])
        self.assertEqual(mail.outbox[0].subject, 'Hello')

    def test_eager_delivery_uses_in_memory_broker(self):
        self.assertTrue(celery_app.conf.task_always_eager)
        self.assertEqual(celery_app.conf.broker_url, 'memory://')

        notification = create_notification(self.user, 'general', 'Inline', 'No broker running')

        notification.refresh_from_db()
        self.assertTrue(notification.is_sent)

    def test_user_without_email_keeps_in_app_copy(self):
        self.user.email = ''
        self.user.save()

        notification = create_notification(self.user, 'general', 'Hi', 'No mail')

        notification.refresh_from_db()
        self.assertFalse(notification.is_sent)
        self.assertEqual(len(mail.outbox), 0)

    def test_storage_failure_is_swallowed(self):
        with mock.patch('notifications.utils.Notification.objects.create', side_effect=RuntimeError('db down')):
            result = create_notification(self.user, 'general', 'Lost', 'Never stored')
        self.assertIsNone(result)

    def test_queue_failure_is_swallowed(self):
        with mock.patch('notifications.tasks.deliver_notification') as task:
            task.delay.side_effect = ConnectionError('no broker')
            notification = create_notification(self.user, 'general', 'Queued', 'Broker down')

        self.assertIsNotNone(notification)
        self.assertTrue(Notification.objects.filter(pk=notification.pk, is_sent=False).exists())

    def test_mail_failure_is_swallowed(self):
        with mock.patch('notifications.tasks.send_mail', side_effect=OSError('smtp down')):
            notification = create_notification(self.user, 'general', 'Mail', 'SMTP down')

        notification.refresh_from_db()
        self.assertFalse(notification.is_sent)

    def test_read_helpers(self):
        first = create_notification(self.user, 'general', 'One', '1')
        create_notification(self.user, 'general', 'Two', '2')
        self.assertEqual(get_unread_count(self.user), 2)

        first.mark_as_read()
        self.assertEqual(get_unread_count(self.user), 1)

        self.assertEqual(mark_all_as_read(self.user), 1)
        self.assertEqual(get_unread_count(self.user), 0)

    def test_format_amount(self):
        self.assertEqual(format_amount(10000), '10 000 FCFA')
        self.assertEqual(format_amount(500), '500 FCFA')


class NotificationOutboxTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='outbox', password='testpass123')

    def test_nothing_stored_until_flush(self):
        outbox = NotificationOutbox()
        NotificationHelper.notify_custom(outbox, user=self.user, title='Later', message='Queued')

        self.assertEqual(len(outbox), 1)
        self.assertFalse(Notification.objects.exists())

        created = outbox.flush()
        self.assertEqual(len(created), 1)
        self.assertEqual(len(outbox), 0)
        self.assertEqual(Notification.objects.get().title, 'Later')

    def test_without_outbox_emits_immediately(self):
        notification = NotificationHelper.notify_custom(None, user=self.user, title='Now', message='Direct')
        self.assertEqual(Notification.objects.get(), notification)


class NotificationIsolationTest(TontineTestMixin, TestCase):
    """A failing notification never undoes the tontine change"""

    def test_validation_survives_notification_failure(self):
        tontine = self.start_tontine(members=2)
        contributor = self.contributors_of(tontine)[0]
        PaymentService.mark_paid(tontine.pk, contributor.pk, contributor.user, make_proof())

        with mock.patch('notifications.utils.Notification.objects.create', side_effect=RuntimeError('db down')):
            payment = PaymentService.validate(tontine.pk, contributor.pk, self.initiator)

        self.assertEqual(payment.status, 'confirmed')
        self.assertEqual(Payment.objects.get(pk=payment.pk).status, 'confirmed')
        self.assertFalse(Notification.objects.filter(notification_type='payment_validated').exists())

    def test_tontine_link_in_notification(self):
        tontine = self.start_tontine(members=2)
        notification = Notification.objects.filter(notification_type='tontine_started').first()

        self.assertEqual(notification.tontine, tontine)
        self.assertEqual(
            notification.action_url,
            reverse('tontines:tontine_detail', kwargs={'tontine_id': tontine.pk})
        )


class NotificationViewsTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='viewer', password='testpass123')
        self.other = User.objects.create_user(username='other', password='testpass123')
        self.client = Client()
        self.client.force_login(self.user)

    def test_list_only_own(self):
        create_notification(self.user, 'general', 'Mine', 'm')
        create_notification(self.other, 'general', 'Theirs', 't')

        body = self.client.get(reverse('notifications:notification_list')).json()

        self.assertEqual([n['title'] for n in body['results']], ['Mine'])
        self.assertEqual(body['unread_count'], 1)

    def test_unread_filter(self):
        read = create_notification(self.user, 'general', 'Read', 'r')
        read.mark_as_read()
        create_notification(self.user, 'general', 'Unread', 'u')

        body = self.client.get(reverse('notifications:notification_list'), {'unread': '1'}).json()
        self.assertEqual([n['title'] for n in body['results']], ['Unread'])

    def test_mark_read(self):
        notification = create_notification(self.user, 'general', 'Mine', 'm')
        response = self.client.post(reverse('notifications:mark_notification_read', args=[notification.pk]))

        self.assertEqual(response.status_code, 200)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)

    def test_cannot_mark_someone_elses(self):
        notification = create_notification(self.other, 'general', 'Theirs', 't')
        response = self.client.post(reverse('notifications:mark_notification_read', args=[notification.pk]))
        self.assertEqual(response.status_code, 404)

    def test_mark_all_read(self):
        create_notification(self.user, 'general', 'One', '1')
        create_notification(self.user, 'general', 'Two', '2')

        response = self.client.post(reverse('notifications:mark_all_notifications_read'))

        self.assertEqual(response.json()['updated'], 2)
        self.assertEqual(get_unread_count(self.user), 0)
