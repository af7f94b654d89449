"""
Onboarding application workflow.

Each principal applies per track (candidate or mentor). An application starts
``pending`` and an admin moves it to ``approved`` or ``rejected``. Approval
gates dashboard access; the role itself is granted at registration time.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from lifecycle.exceptions import NotFound, ValidationFailed, translate_store_errors
from lifecycle.models import TRACK_CHOICES, OnboardingApplication
from lifecycle.roles import require_admin

logger = logging.getLogger(__name__)

VALID_TRACKS = {value for value, _ in TRACK_CHOICES}
DECISIONS = {OnboardingApplication.STATUS_APPROVED, OnboardingApplication.STATUS_REJECTED}


@dataclass(frozen=True)
class ApplicationStatus:
    status: Optional[str]
    is_profile_complete: bool
    application: Optional[OnboardingApplication] = None


def _validate_track(track):
    if track not in VALID_TRACKS:
        raise ValidationFailed({'track': f"Unknown track '{track}'."})


def _validate_payload(payload):
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationFailed({'payload': 'Profile data must be an object.'})
    return payload


def current(user, track):
    return OnboardingApplication.objects.current(user, track)


@translate_store_errors
def submit(user, track, initial_payload=None):
    """Create a pending application unless an open one already exists.

    A second submission while an application is pending or approved returns
    that application untouched. After a rejection a new row is started.
    """
    _validate_track(track)
    payload = _validate_payload(initial_payload)

    with transaction.atomic():
        existing = (
            OnboardingApplication.objects.select_for_update()
            .for_track(user, track)
            .exclude(status=OnboardingApplication.STATUS_REJECTED)
            .order_by('-created_at')
            .first()
        )
        if existing:
            logger.debug("Skipping %s application for user %s; %s exists", track, user.pk, existing.status)
            return existing
        try:
            with transaction.atomic():
                application = OnboardingApplication.objects.create(user=user, track=track, payload=payload)
        except IntegrityError:
            # A concurrent submit won; hand back its row.
            return (
                OnboardingApplication.objects.for_track(user, track)
                .exclude(status=OnboardingApplication.STATUS_REJECTED)
                .get()
            )

    logger.info("Submitted %s application %s for user %s", track, application.id, user.pk)
    return application


@translate_store_errors
def decide(application_id, decision, decided_by):
    """Admin approval or rejection of an application.

    Repeating the decision already on record is a no-op; reversing it is refused.
    """
    require_admin(decided_by)
    if decision not in DECISIONS:
        raise ValidationFailed({'decision': "Decision must be 'approved' or 'rejected'."})

    with transaction.atomic():
        try:
            application = OnboardingApplication.objects.select_for_update().get(id=application_id)
        except (OnboardingApplication.DoesNotExist, DjangoValidationError):
            raise NotFound('Onboarding application not found.')

        if application.status == decision:
            return application
        if application.status != OnboardingApplication.STATUS_PENDING:
            raise ValidationFailed(f"This application was already {application.status}.")

        application.status = decision
        application.decided_at = timezone.now()
        application.decided_by = decided_by
        application.save(update_fields=['status', 'decided_at', 'decided_by', 'updated_at'])

    logger.info(
        "Application %s (%s, user %s) %s by %s",
        application.id, application.track, application.user_id, decision, decided_by.pk,
    )
    return application


@translate_store_errors
def complete_profile(user, track, full_payload):
    """Overwrite the current application's payload with the full profile.

    Status is left as-is unless ``ONBOARDING_COMPLETE_PROFILE_APPROVES`` is set,
    in which case saving a profile also marks the application approved.
    """
    _validate_track(track)
    payload = _validate_payload(full_payload)
    force_approve = getattr(settings, 'ONBOARDING_COMPLETE_PROFILE_APPROVES', False)

    with transaction.atomic():
        application = (
            OnboardingApplication.objects.select_for_update()
            .for_track(user, track)
            .order_by('-created_at')
            .first()
        )
        if application is None:
            raise NotFound(f"No {track} application found. Submit an application first.")

        application.payload = payload
        update_fields = ['payload', 'updated_at']
        if force_approve and application.status != OnboardingApplication.STATUS_APPROVED:
            logger.warning(
                "Profile save approved %s application %s (was %s)",
                track, application.id, application.status,
            )
            application.status = OnboardingApplication.STATUS_APPROVED
            application.decided_at = timezone.now()
            update_fields += ['status', 'decided_at']
        application.save(update_fields=update_fields)

    return application


@translate_store_errors
def status_for(user, track):
    _validate_track(track)
    application = current(user, track)
    if application is None:
        return ApplicationStatus(status=None, is_profile_complete=False)
    return ApplicationStatus(
        status=application.status,
        is_profile_complete=application.is_profile_complete,
        application=application,
    )


def published_skills(mentor):
    """Skills a mentor advertises, from their approved mentor application."""
    application = current(mentor, 'mentor')
    if application is None or application.status != OnboardingApplication.STATUS_APPROVED:
        return []
    skills = (application.payload or {}).get('skills') or []
    if not isinstance(skills, list):
        return []
    return [str(s).strip() for s in skills if str(s).strip()]


@translate_store_errors
def list_applications(status=None, track=None):
    qs = OnboardingApplication.objects.select_related('user', 'user__profile').order_by('-created_at')
    if status:
        qs = qs.filter(status=status)
    if track:
        _validate_track(track)
        qs = qs.filter(track=track)
    return qs
