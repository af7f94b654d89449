"""
Registration: turning an authenticated identity into a principal with a role
and a pending onboarding application.

The three writes (profile, role, application) are not wrapped in one
transaction. Each step checks before it writes, always in the same order, so a
failed registration is repaired by calling ``ensure_registered`` again.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, transaction

from lifecycle import onboarding, roles
from lifecycle.exceptions import DuplicateRequest, StoreUnavailable, ValidationFailed, translate_store_errors
from lifecycle.firebase_utils import (
    IdentityAlreadyExists,
    IdentityProviderError,
    create_firebase_user,
    delete_firebase_user,
)
from lifecycle.models import Profile

logger = logging.getLogger(__name__)
User = get_user_model()


def _default_display_name(email):
    return (email or '').split('@')[0]


@translate_store_errors
def ensure_profile(user, email=None, display_name=None):
    email = (email or user.email or '').lower()
    profile, created = Profile.objects.get_or_create(
        user=user,
        defaults={
            'email': email,
            'display_name': display_name or _default_display_name(email),
        },
    )
    if created:
        logger.info("Created profile for user %s", user.pk)
    return profile


def ensure_registered(user, track, email=None, display_name=None, initial_payload=None):
    """Idempotently register ``user`` on ``track``.

    Order: profile, then role, then onboarding application. Returns the
    profile and the current application.
    """
    if track not in onboarding.VALID_TRACKS:
        raise ValidationFailed({'track': "Track must be 'candidate' or 'mentor'."})

    profile = ensure_profile(user, email=email, display_name=display_name)
    roles.assign(user, track)

    payload = initial_payload
    if payload is None:
        payload = {'fullName': profile.display_name}
    application = onboarding.submit(user, track, payload)
    return profile, application


def sign_up(email, password, display_name, track, initial_payload=None):
    """Create the Firebase identity and the local principal, then register it."""
    email = (email or '').strip().lower()
    if not email or not password:
        raise ValidationFailed('Email and password are required.')
    if track not in onboarding.VALID_TRACKS:
        raise ValidationFailed({'track': "Track must be 'candidate' or 'mentor'."})
    if User.objects.filter(email__iexact=email).exists():
        raise DuplicateRequest('An account with this email already exists. Please log in instead.')

    try:
        firebase_user = create_firebase_user(email, password, display_name)
    except IdentityAlreadyExists:
        raise DuplicateRequest('An account with this email already exists. Please log in instead.')
    except IdentityProviderError as exc:
        raise StoreUnavailable('Authentication service is not available.') from exc

    uid = firebase_user['uid']
    try:
        with transaction.atomic():
            user = User.objects.create_user(username=uid, email=email)
            user.set_unusable_password()
            user.save(update_fields=['password'])
    except (IntegrityError, DatabaseError) as exc:
        logger.error("Local user creation failed for %s, rolling back Firebase user: %s", email, exc)
        delete_firebase_user(uid)
        raise StoreUnavailable('Registration failed. Please try again.') from exc

    logger.info("Signed up user %s on track %s", user.pk, track)
    profile, application = ensure_registered(
        user, track, email=email, display_name=display_name, initial_payload=initial_payload,
    )
    return user, profile, application


@translate_store_errors
def update_profile(user, display_name=None, email=None):
    """Owner edit of display fields. The principal id never changes."""
    profile = ensure_profile(user)
    update_fields = []
    if display_name is not None:
        display_name = display_name.strip()
        if not display_name:
            raise ValidationFailed({'display_name': 'Display name cannot be blank.'})
        profile.display_name = display_name
        update_fields.append('display_name')
    if email is not None:
        profile.email = email.strip().lower()
        update_fields.append('email')
    if update_fields:
        profile.save(update_fields=update_fields + ['updated_at'])
    return profile
