from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError

from lifecycle import roles
from lifecycle.models import ROLE_MENTOR, ROLE_SUPER_ADMIN, Profile
from lifecycle.tests.fixtures import UserFactory

User = get_user_model()


@pytest.mark.django_db
class TestSeedSuperAdmin:
    def test_creates_user_with_role(self):
        out = StringIO()
        call_command('seed_super_admin', '--email=Root@Example.com', '--uid=fb-root', '--display-name=Root', stdout=out)

        user = User.objects.get(username='fb-root')
        assert user.email == 'root@example.com'
        assert roles.has_role(user, ROLE_SUPER_ADMIN)
        assert Profile.objects.get(user=user).display_name == 'Root'
        assert 'super admin' in out.getvalue()

    def test_is_idempotent_for_existing_user(self):
        user = UserFactory(email='boss@example.com')
        for _ in range(2):
            call_command('seed_super_admin', '--email=boss@example.com', stdout=StringIO())

        assert User.objects.filter(email='boss@example.com').count() == 1
        assert roles.roles_of(user) == {ROLE_SUPER_ADMIN}


@pytest.mark.django_db
class TestGrantRole:
    def test_grant_and_revoke(self):
        user = UserFactory(email='mentor@example.com')

        call_command('grant_role', 'mentor@example.com', 'mentor', stdout=StringIO())
        assert roles.has_role(user, ROLE_MENTOR)

        out = StringIO()
        call_command('grant_role', 'mentor@example.com', 'mentor', '--revoke', stdout=out)
        assert not roles.has_role(user, ROLE_MENTOR)
        assert 'Revoked mentor' in out.getvalue()

    def test_unknown_email(self):
        with pytest.raises(CommandError):
            call_command('grant_role', 'ghost@example.com', 'mentor', stdout=StringIO())
