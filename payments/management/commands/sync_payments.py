import datetime
from django.core.management.base import BaseCommand, CommandError

from payments.exceptions import CredentialsNotConfigured, PaymentApiError
from payments.services import sync_payment_history


class Command(BaseCommand):
    help = "Fetch the provider payment report for a date range and reconcile it into the local store"

    def add_arguments(self, parser):
        parser.add_argument('--from', dest='date_from', type=datetime.date.fromisoformat, default=None)
        parser.add_argument('--to', dest='date_to', type=datetime.date.fromisoformat, default=None)

    def handle(self, *args, **options):
        try:
            result = sync_payment_history(date_from=options['date_from'], date_to=options['date_to'])
        except CredentialsNotConfigured as e:
            raise CommandError(str(e))
        except PaymentApiError as e:
            raise CommandError(f"Provider error: {e.message}\n{e.raw_response or ''}")

        self.stdout.write(
            f"Synced {result['received']} payments ({result['date_from']} .. {result['date_to']}): "
            f"{result['added']} added, {result['updated']} updated"
        )
