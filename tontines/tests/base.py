from django.contrib.auth.models import User
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal

from tontines.models import Tontine
from tontines.proofs import ProofSubmission
from tontines.services import TontineService, ParticipantService


IN_MEMORY_STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.InMemoryStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}


def transfer_details(**overrides):
    data = {
        'amount': '10000.00',
        'network': 'MTN',
        'recipient_number': '+237670000000',
        'transfer_number': 'MP240115.1200.A12345',
        'transfer_date': '2024-01-15',
        'transfer_time': '12:00:00',
    }
    data.update(overrides)
    return data


def make_proof(reference='payment_proofs/test/proof.png'):
    return ProofSubmission(reference=reference, details=transfer_details())


class TontineTestMixin:
    """Users and tontines shared by the tontine test cases"""

    def setUp(self):
        self.initiator = User.objects.create_user(
            username='initiator',
            email='initiator@example.com',
            password='testpass123'
        )
        self.members = [
            User.objects.create_user(
                username=f'member{i}',
                email=f'member{i}@example.com',
                password='testpass123'
            )
            for i in range(1, 5)
        ]

    def tontine_data(self, **overrides):
        data = {
            'name': 'Tontine du Quartier',
            'description': 'Monthly savings between neighbours',
            'amount': Decimal('10000'),
            'frequency': 'monthly',
            'start_date': timezone.localdate() + timedelta(days=1),
            'order_type': 'manual',
            'gain_type': 'money',
        }
        data.update(overrides)
        return data

    def create_tontine(self, members=0, **overrides):
        tontine = TontineService.create_tontine(self.initiator, self.tontine_data(**overrides))
        for user in self.members[:members]:
            ParticipantService.join(tontine.invite_code, user)
        return Tontine.objects.get(pk=tontine.pk)

    def start_tontine(self, members=3, **overrides):
        tontine = self.create_tontine(members=members, **overrides)
        return TontineService.start_tontine(tontine.pk, self.initiator)

    def participant_for(self, tontine, user):
        return tontine.participants.get(user=user)

    def beneficiary_of(self, tontine):
        return tontine.participants.get(position=tontine.current_cycle)

    def contributors_of(self, tontine):
        return list(tontine.participants.exclude(position=tontine.current_cycle).order_by('position'))
