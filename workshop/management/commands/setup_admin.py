"""
Django management command to create the first owner account
"""

import getpass
import logging

from django.core.management.base import BaseCommand, CommandError

from stock.services.base_service import ConflictError, ValidationError
from workshop.services.auth_service import AuthService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Create the initial owner account (only while no staff exists)'

    def add_arguments(self, parser):
        parser.add_argument('--email', required=True, help='Owner email address')
        parser.add_argument('--name', default='Admin User', help='Owner display name')
        parser.add_argument('--mobile', default='', help='Owner mobile number')
        parser.add_argument(
            '--password',
            help='Owner password; prompted for when omitted'
        )

    def handle(self, *args, **options):
        if AuthService.admin_exists():
            self.stdout.write(self.style.WARNING('Admin user already exists!'))
            return

        password = options['password'] or getpass.getpass('Password: ')

        try:
            result = AuthService.setup_owner(
                name=options['name'],
                email=options['email'],
                password=password,
                mobile=options['mobile'],
            )
        except ConflictError as e:
            self.stdout.write(self.style.WARNING(e.message))
            return
        except ValidationError as e:
            raise CommandError(e.message)

        self.stdout.write(self.style.SUCCESS(result['message']))
        self.stdout.write(f"Email: {result['user']['email']}")
