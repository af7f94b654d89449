"""
Management command to bootstrap the first super admin.

Usage:
    python manage.py seed_super_admin --email=admin@example.com [--uid=<firebase uid>]

Idempotent: running it again for the same email only makes sure the
profile and the super_admin role exist.
"""
import logging

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from lifecycle import registration, roles
from lifecycle.models import ROLE_SUPER_ADMIN

logger = logging.getLogger(__name__)
User = get_user_model()


class Command(BaseCommand):
    help = 'Create (or reuse) a user and grant it the super_admin role'

    def add_arguments(self, parser):
        parser.add_argument('--email', required=True, help='Email of the super admin')
        parser.add_argument(
            '--uid',
            help='Firebase UID to use as the username when the user does not exist yet',
        )
        parser.add_argument('--display-name', default='', help='Display name for the profile')

    def handle(self, *args, **options):
        email = options['email'].strip().lower()
        if not email:
            raise CommandError('--email is required')

        user = User.objects.filter(email__iexact=email).order_by('id').first()
        if user is None:
            username = options.get('uid') or email
            user = User.objects.create_user(username=username, email=email)
            user.set_unusable_password()
            user.save(update_fields=['password'])
            self.stdout.write(f"Created user {username}")

        registration.ensure_profile(user, email=email, display_name=options['display_name'] or None)
        roles.assign(user, ROLE_SUPER_ADMIN)
        logger.info("Seeded super admin user %s", user.pk)
        self.stdout.write(self.style.SUCCESS(f"{email} is a super admin"))
