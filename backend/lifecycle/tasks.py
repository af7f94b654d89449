"""Background notification tasks for the mentorship ledger.

Tasks only read the request and send mail; a failed send is logged and never
changes ledger state.
"""
import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from lifecycle.models import MentorshipRequest, Profile

logger = logging.getLogger(__name__)


def _display_name(user):
    try:
        name = user.profile.display_name
    except Profile.DoesNotExist:
        name = ''
    return (name or user.get_full_name() or user.email or 'A member').strip()


def _dashboard_url(path):
    base = getattr(settings, 'FRONTEND_BASE_URL', 'http://localhost:3000').rstrip('/')
    return f"{base}/{path.lstrip('/')}"


def _send(subject, lines, recipient):
    from_email = getattr(settings, 'DEFAULT_FROM_EMAIL', None)
    try:
        send_mail(subject, "\n".join(lines), from_email, [recipient], fail_silently=False)
    except Exception as exc:
        logger.warning("Failed to send '%s' email to %s: %s", subject, recipient, exc)
        return False
    return True


@shared_task
def send_mentorship_request_email(request_id):
    """Tell the mentor a candidate asked for mentorship."""
    try:
        mentorship_request = MentorshipRequest.objects.select_related('candidate', 'mentor').get(id=request_id)
    except MentorshipRequest.DoesNotExist:
        logger.warning("Mentorship request %s vanished before notification", request_id)
        return False

    mentor = mentorship_request.mentor
    mentor_email = (mentor.email or '').strip()
    if not mentor_email:
        return False

    lines = [
        f"Hi {_display_name(mentor)},",
        "",
        f"{_display_name(mentorship_request.candidate)} is requesting your mentorship.",
        f"Skills: {', '.join(mentorship_request.selected_skills)}",
    ]
    if mentorship_request.message:
        lines.extend(["", "Personal note:", mentorship_request.message])
    lines.extend([
        "",
        f"Review and respond to this request: {_dashboard_url('mentor/requests')}",
    ])
    return _send("New mentorship request", lines, mentor_email)


@shared_task
def send_mentorship_decision_email(request_id):
    """Tell the candidate how the mentor answered."""
    try:
        mentorship_request = MentorshipRequest.objects.select_related('candidate', 'mentor').get(id=request_id)
    except MentorshipRequest.DoesNotExist:
        logger.warning("Mentorship request %s vanished before notification", request_id)
        return False

    candidate = mentorship_request.candidate
    candidate_email = (candidate.email or '').strip()
    if not candidate_email:
        return False

    verb = 'accepted' if mentorship_request.status == MentorshipRequest.STATUS_ACCEPTED else 'declined'
    lines = [
        f"Hi {_display_name(candidate)},",
        "",
        f"{_display_name(mentorship_request.mentor)} has {verb} your mentorship request.",
    ]
    if mentorship_request.notes:
        lines.extend(["", "Mentor's note:", mentorship_request.notes])
    lines.extend(["", f"See your requests: {_dashboard_url('candidate/requests')}"])
    return _send(f"Your mentorship request was {verb}", lines, candidate_email)
