"""
Grant or revoke a lifecycle role from the command line.

Usage:
    python manage.py grant_role user@example.com mentor
    python manage.py grant_role user@example.com admin --revoke
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from lifecycle import roles
from lifecycle.exceptions import LifecycleError

User = get_user_model()


class Command(BaseCommand):
    help = 'Grant (or with --revoke, remove) a role for a user identified by email'

    def add_arguments(self, parser):
        parser.add_argument('email')
        parser.add_argument('role', choices=sorted(roles.VALID_ROLES))
        parser.add_argument('--revoke', action='store_true', help='Remove the role instead of granting it')

    def handle(self, *args, **options):
        user = User.objects.filter(email__iexact=options['email'].strip()).order_by('id').first()
        if user is None:
            raise CommandError(f"No user with email {options['email']}")

        role = options['role']
        try:
            if options['revoke']:
                removed = roles.revoke(user, role)
                message = f"Revoked {role}" if removed else f"{role} was not assigned"
            else:
                roles.assign(user, role)
                message = f"Granted {role}"
        except LifecycleError as exc:
            raise CommandError(str(exc.detail)) from exc

        self.stdout.write(self.style.SUCCESS(f"{message} for {user.email}"))
