from django.core.management.base import BaseCommand

from tontines.models import Tontine
from tontines.repository import tontine_repository
from tontines.rotation import due_date_for
from tontines.services import PaymentService


class Command(BaseCommand):
    help = 'List tontines with their status, rotation and current cycle'

    def add_arguments(self, parser):
        parser.add_argument(
            '--status',
            type=str,
            choices=[value for value, _ in Tontine.STATUS_CHOICES],
            help='Filter by status',
        )

    def handle(self, *args, **options):
        tontines = tontine_repository.query(status=options.get('status'))

        self.stdout.write(self.style.SUCCESS('\n' + '=' * 80))
        self.stdout.write(self.style.SUCCESS('  TONTINES'))
        self.stdout.write(self.style.SUCCESS('=' * 80))

        if not tontines.exists():
            self.stdout.write(self.style.WARNING('No tontines found.'))
            return

        status_styles = {
            'active': self.style.SUCCESS,
            'completed': self.style.HTTP_INFO,
            'draft': self.style.WARNING,
            'suspended': self.style.ERROR,
        }

        for tontine in tontines:
            style = status_styles.get(tontine.status, self.style.NOTICE)
            limit = 'unlimited' if tontine.is_unlimited else tontine.max_participants

            self.stdout.write('\n' + '-' * 80)
            self.stdout.write(self.style.HTTP_SUCCESS(f'NAME: {tontine.name}'))
            self.stdout.write(f'ID: {tontine.id}')
            self.stdout.write(style(f'STATUS: {tontine.status.upper()}'))
            self.stdout.write(f'INVITE CODE: {tontine.invite_code}')
            self.stdout.write(f'INITIATOR: {tontine.initiator.username}')
            self.stdout.write(f'AMOUNT: {tontine.amount} FCFA ({tontine.get_frequency_display()})')
            self.stdout.write(f'PARTICIPANTS: {len(tontine.participants.all())}/{limit}')

            if tontine.is_running():
                beneficiary = tontine.get_current_beneficiary()
                self.stdout.write(f'CYCLE: {tontine.current_cycle} (due {due_date_for(tontine):%Y-%m-%d})')
                if beneficiary:
                    self.stdout.write(f'BENEFICIARY: {beneficiary.user.username}')
                overdue = PaymentService.overdue_states(tontine)
                if overdue:
                    names = ', '.join(state.participant.user.username for state in overdue)
                    self.stdout.write(self.style.ERROR(f'OVERDUE: {names}'))

            for participant in tontine.participants.all():
                marker = ' (paid out)' if participant.has_received_payout else ''
                self.stdout.write(f'  {participant.position}. {participant.user.username}{marker}')

        self.stdout.write('\n' + '=' * 80)
        self.stdout.write(self.style.SUCCESS(f'Total tontines: {tontines.count()}\n'))
