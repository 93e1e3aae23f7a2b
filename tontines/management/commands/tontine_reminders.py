from django.core.management.base import BaseCommand

from tontines.tasks import send_payment_reminders


class Command(BaseCommand):
    help = 'Send due-soon and overdue contribution reminders for active tontines'

    def handle(self, *args, **options):
        totals = send_payment_reminders()

        self.stdout.write(self.style.SUCCESS(
            f"Reminders sent for {totals['tontines']} tontine(s): "
            f"{totals['due_soon']} due soon, {totals['overdue']} overdue"
        ))
        if totals['failed']:
            self.stdout.write(self.style.ERROR(f"{totals['failed']} tontine(s) failed, see the logs"))
