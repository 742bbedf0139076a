"""
Issue a bearer token for the invite API.

Usage:
    python manage.py issue_api_token alice
    python manage.py issue_api_token alice --revoke-existing
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from stash.models import ApiToken


class Command(BaseCommand):
    help = 'Create an API bearer token for a user'

    def add_arguments(self, parser):
        parser.add_argument('username', help='Username that will own the token')
        parser.add_argument(
            '--revoke-existing',
            action='store_true',
            help='Deactivate the user\'s other tokens first',
        )

    def handle(self, *args, **options):
        User = get_user_model()
        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['username']}' does not exist")

        if options['revoke_existing']:
            revoked = ApiToken.objects.filter(user=user, is_active=True).update(is_active=False)
            if revoked:
                self.stdout.write(self.style.WARNING(f"Revoked {revoked} existing token(s)"))

        token = ApiToken.objects.create(user=user)
        self.stdout.write(self.style.SUCCESS(f"Token for {user.get_username()}:"))
        self.stdout.write(token.key)
