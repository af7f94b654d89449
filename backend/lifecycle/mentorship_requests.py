"""
Mentorship request ledger.

A candidate asks an approved mentor for mentorship on a subset of the mentor's
skills. Only the addressed mentor may accept or reject; the candidate may
withdraw while the request is still pending. Acceptance is what unlocks
roadmap creation.
"""
import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from lifecycle import onboarding, roles
from lifecycle.exceptions import (
    AuthorizationDenied,
    DuplicateRequest,
    NotFound,
    ValidationFailed,
    translate_store_errors,
)
from lifecycle.models import ROLE_CANDIDATE, ROLE_MENTOR, MentorshipRequest, OnboardingApplication
from lifecycle.tasks import send_mentorship_decision_email, send_mentorship_request_email

logger = logging.getLogger(__name__)
User = get_user_model()

DECISIONS = {MentorshipRequest.STATUS_ACCEPTED, MentorshipRequest.STATUS_REJECTED}


def _normalize_skills(selected_skills):
    if selected_skills is None:
        return []
    if isinstance(selected_skills, str):
        selected_skills = [selected_skills]
    seen = []
    for skill in selected_skills:
        label = str(skill).strip()
        if label and label not in seen:
            seen.append(label)
    return seen


def _get_request(request_id, for_update=False):
    qs = MentorshipRequest.objects.select_related('candidate', 'mentor')
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(id=request_id)
    except (MentorshipRequest.DoesNotExist, DjangoValidationError):
        raise NotFound('Mentorship request not found.')


def _notify(task, request_id):
    try:
        task.delay(str(request_id))
    except Exception as exc:
        # Notifications never block the ledger.
        logger.warning("Failed to queue %s for request %s: %s", task.name, request_id, exc)


@translate_store_errors
def create(candidate, mentor, message='', selected_skills=None):
    """Open a pending request from ``candidate`` to ``mentor``."""
    if not roles.has_role(candidate, ROLE_CANDIDATE):
        raise AuthorizationDenied('Only candidates can request mentorship.')
    if mentor is None:
        raise NotFound('Mentor not found.')
    if mentor.pk == candidate.pk:
        raise ValidationFailed('You cannot send a mentorship request to yourself.')

    mentor_application = onboarding.current(mentor, ROLE_MENTOR)
    if mentor_application is None or mentor_application.status != OnboardingApplication.STATUS_APPROVED:
        raise NotFound('Mentor not found or not yet approved.')

    skills = _normalize_skills(selected_skills)
    if not skills:
        raise ValidationFailed({'selected_skills': 'Select at least one skill.'})
    offered = set(onboarding.published_skills(mentor))
    unknown = [s for s in skills if s not in offered]
    if unknown:
        raise ValidationFailed({'selected_skills': f"Mentor does not offer: {', '.join(unknown)}."})

    if MentorshipRequest.objects.filter(candidate=candidate, mentor=mentor).exists():
        raise DuplicateRequest('You already sent a mentorship request to this mentor.')

    try:
        with transaction.atomic():
            mentorship_request = MentorshipRequest.objects.create(
                candidate=candidate,
                mentor=mentor,
                message=(message or '').strip(),
                selected_skills=skills,
            )
    except IntegrityError:
        raise DuplicateRequest('You already sent a mentorship request to this mentor.')

    logger.info("Mentorship request %s: candidate %s -> mentor %s", mentorship_request.id, candidate.pk, mentor.pk)

    transaction.on_commit(lambda: _notify(send_mentorship_request_email, mentorship_request.id))
    return mentorship_request


@translate_store_errors
def decide(request_id, decision, mentor, notes=None):
    """Accept or reject a request addressed to ``mentor``."""
    if decision not in DECISIONS:
        raise ValidationFailed({'decision': "Decision must be 'accepted' or 'rejected'."})

    with transaction.atomic():
        mentorship_request = _get_request(request_id, for_update=True)
        if mentorship_request.mentor_id != mentor.pk:
            raise AuthorizationDenied('Only the addressed mentor can respond to this request.')

        if mentorship_request.status == decision:
            return mentorship_request
        if mentorship_request.status != MentorshipRequest.STATUS_PENDING:
            raise ValidationFailed(f"This request is already {mentorship_request.status}.")

        mentorship_request.status = decision
        mentorship_request.decided_at = timezone.now()
        update_fields = ['status', 'decided_at', 'updated_at']
        if notes is not None:
            mentorship_request.notes = notes.strip()
            update_fields.append('notes')
        mentorship_request.save(update_fields=update_fields)

    logger.info("Mentorship request %s %s by mentor %s", mentorship_request.id, decision, mentor.pk)

    transaction.on_commit(lambda: _notify(send_mentorship_decision_email, mentorship_request.id))
    return mentorship_request


@translate_store_errors
def cancel(request_id, candidate):
    """Candidate withdraws a request that has not been answered yet."""
    with transaction.atomic():
        mentorship_request = _get_request(request_id, for_update=True)
        if mentorship_request.candidate_id != candidate.pk:
            raise AuthorizationDenied('Only the requester can cancel this mentorship request.')
        if mentorship_request.status == MentorshipRequest.STATUS_CANCELLED:
            return mentorship_request
        if mentorship_request.status != MentorshipRequest.STATUS_PENDING:
            raise ValidationFailed('Only pending requests can be cancelled.')

        mentorship_request.status = MentorshipRequest.STATUS_CANCELLED
        mentorship_request.decided_at = timezone.now()
        mentorship_request.save(update_fields=['status', 'decided_at', 'updated_at'])

    logger.info("Mentorship request %s cancelled by candidate %s", mentorship_request.id, candidate.pk)
    return mentorship_request


@translate_store_errors
def accepted_request_for(mentor, candidate, request_id=None):
    """The accepted request linking this pair, or None."""
    qs = MentorshipRequest.objects.filter(
        mentor=mentor,
        candidate=candidate,
        status=MentorshipRequest.STATUS_ACCEPTED,
    )
    if request_id is not None:
        qs = qs.filter(id=request_id)
    return qs.first()


@translate_store_errors
def incoming_for(mentor, status=None):
    qs = MentorshipRequest.objects.select_related('candidate__profile').filter(mentor=mentor)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at')


@translate_store_errors
def outgoing_for(candidate, status=None):
    qs = MentorshipRequest.objects.select_related('mentor__profile').filter(candidate=candidate)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at')


@translate_store_errors
def list_mentors(skill=None):
    """Approved mentors and the skills they publish, optionally filtered by one skill."""
    approved_ids = (
        OnboardingApplication.objects.filter(track=ROLE_MENTOR, status=OnboardingApplication.STATUS_APPROVED)
        .values_list('user_id', flat=True)
    )
    mentors = (
        User.objects.filter(id__in=approved_ids, role_assignments__role=ROLE_MENTOR)
        .select_related('profile')
        .distinct()
        .order_by('id')
    )
    results = []
    wanted = (skill or '').strip().lower()
    for mentor in mentors:
        application = onboarding.current(mentor, ROLE_MENTOR)
        if application is None or application.status != OnboardingApplication.STATUS_APPROVED:
            continue
        skills = onboarding.published_skills(mentor)
        if wanted and wanted not in {s.lower() for s in skills}:
            continue
        results.append({'mentor': mentor, 'skills': skills, 'profile': application.payload or {}})
    return results

