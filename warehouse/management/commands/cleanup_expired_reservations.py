"""
Management command to release expired reservations.

Usage:
    python manage.py cleanup_expired_reservations
    python manage.py cleanup_expired_reservations --dry-run
"""

from django.core.management.base import BaseCommand

from warehouse import get_warehouse


class Command(BaseCommand):
    """Release expired reservations command."""

    help = 'Releases reservations whose TTL has passed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many reservations would be released without changing anything'
        )

    def handle(self, *args, **options):
        warehouse = get_warehouse()

        if options['dry_run']:
            expired = warehouse.sweeper.count_expired()
            self.stdout.write(f'{expired} reservation(s) would be released')
        else:
            count = warehouse.cleanup_expired_reservations()
            self.stdout.write(
                self.style.SUCCESS(f'{count} reservation(s) released')
            )
