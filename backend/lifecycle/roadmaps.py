"""
Learning roadmaps and their milestones.

A mentor may author a roadmap only for a candidate whose mentorship request
they accepted. Milestones carry stable ids and a dense 1-based ``order``;
every write that changes a milestone bumps the roadmap ``version`` so clients
holding an older copy can be told to refresh.
"""
import copy
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from lifecycle.exceptions import (
    AuthorizationDenied,
    NotFound,
    ValidationFailed,
    VersionConflict,
    translate_store_errors,
)
from lifecycle.models import LearningRoadmap, MentorshipRequest, Milestone, MilestoneComment
from lifecycle.progress import clamp_progress

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30
DEFAULT_POLL_OVERLAP_SECONDS = 5

MILESTONE_TEMPLATES = {
    'JavaScript': [
        {'title': 'JavaScript Fundamentals', 'description': 'Learn basic syntax, variables, functions, and control structures', 'estimated_hours': 20},
        {'title': 'DOM Manipulation', 'description': 'Understand how to interact with HTML elements using JavaScript', 'estimated_hours': 15},
        {'title': 'ES6+ Features', 'description': 'Master modern JavaScript features like arrow functions, destructuring, and modules', 'estimated_hours': 25},
        {'title': 'Async Programming', 'description': 'Learn promises, async/await, and handling asynchronous operations', 'estimated_hours': 20},
        {'title': 'Project: Interactive Web App', 'description': 'Build a complete web application using all learned concepts', 'estimated_hours': 40},
    ],
    'React': [
        {'title': 'React Basics', 'description': 'Learn JSX, components, props, and state management', 'estimated_hours': 25},
        {'title': 'Hooks & Lifecycle', 'description': 'Master useState, useEffect, and other React hooks', 'estimated_hours': 20},
        {'title': 'State Management', 'description': 'Learn Context API and state management patterns', 'estimated_hours': 30},
        {'title': 'Routing & Navigation', 'description': 'Implement client-side routing with React Router', 'estimated_hours': 15},
        {'title': 'Project: Full-Stack App', 'description': 'Build a complete React application with backend integration', 'estimated_hours': 50},
    ],
    'Python': [
        {'title': 'Python Basics', 'description': 'Learn syntax, data types, and control structures', 'estimated_hours': 20},
        {'title': 'Functions & Modules', 'description': 'Master function definition, scope, and module organization', 'estimated_hours': 15},
        {'title': 'Object-Oriented Programming', 'description': 'Learn classes, inheritance, and OOP principles', 'estimated_hours': 25},
        {'title': 'Data Structures', 'description': 'Understand lists, dictionaries, sets, and algorithms', 'estimated_hours': 30},
        {'title': 'Project: Data Analysis', 'description': 'Build a data analysis project using pandas and matplotlib', 'estimated_hours': 40},
    ],
    'Data Science': [
        {'title': 'Statistics Fundamentals', 'description': 'Learn basic statistical concepts and probability', 'estimated_hours': 30},
        {'title': 'Data Manipulation', 'description': 'Master pandas for data cleaning and transformation', 'estimated_hours': 25},
        {'title': 'Data Visualization', 'description': 'Learn matplotlib, seaborn, and plotly for data visualization', 'estimated_hours': 20},
        {'title': 'Machine Learning Basics', 'description': 'Introduction to scikit-learn and basic ML algorithms', 'estimated_hours': 40},
        {'title': 'Project: Predictive Model', 'description': 'Build and deploy a machine learning model', 'estimated_hours': 50},
    ],
}


@dataclass
class RoadmapFeed:
    roadmaps: List[LearningRoadmap]
    server_time: datetime
    poll_interval: int
    since: Optional[datetime] = None


def template_milestones(skill):
    """Milestone drafts for a known skill (case-insensitive), numbered from 1."""
    wanted = (skill or '').strip().lower()
    for name, steps in MILESTONE_TEMPLATES.items():
        if name.lower() == wanted:
            drafts = copy.deepcopy(steps)
            for position, draft in enumerate(drafts, start=1):
                draft['order'] = position
                draft['progress'] = 0
            return drafts
    return []


def _parse_hours(raw, position):
    value = raw.get('estimated_hours', raw.get('estimatedHours', 0))
    try:
        hours = int(value or 0)
    except (TypeError, ValueError):
        raise ValidationFailed({'milestones': f"Milestone {position}: estimated hours must be a whole number."})
    if hours < 0:
        raise ValidationFailed({'milestones': f"Milestone {position}: estimated hours cannot be negative."})
    return hours


def _parse_order(raw, position):
    value = raw.get('order')
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailed({'milestones': f"Milestone {position}: order must be a whole number."})


def normalize_milestone(raw, position):
    """Canonical milestone dict from client input, including legacy ``isCompleted``."""
    if not isinstance(raw, dict):
        raise ValidationFailed({'milestones': f"Milestone {position} must be an object."})
    title = (raw.get('title') or '').strip()
    if not title:
        raise ValidationFailed({'milestones': f"Milestone {position} needs a title."})

    if raw.get('progress') is not None:
        progress = clamp_progress(raw['progress'])
    elif raw.get('isCompleted') or raw.get('is_completed'):
        progress = 100
    else:
        progress = 0

    return {
        'title': title,
        'description': (raw.get('description') or '').strip(),
        'estimated_hours': _parse_hours(raw, position),
        'order': _parse_order(raw, position),
        'progress': progress,
    }


def _ordered(milestones):
    """Validate explicit orders (a 1..n permutation) or assign them by position."""
    given = [m['order'] for m in milestones if m['order'] is not None]
    if not given:
        for position, milestone in enumerate(milestones, start=1):
            milestone['order'] = position
        return milestones
    if len(given) != len(milestones) or sorted(given) != list(range(1, len(milestones) + 1)):
        raise ValidationFailed({'milestones': 'Milestone order must run 1, 2, 3... with no gaps or repeats.'})
    return sorted(milestones, key=lambda m: m['order'])


def _normalize_skills(skills):
    if not skills:
        return []
    if isinstance(skills, str):
        skills = [skills]
    return [str(s).strip() for s in skills if str(s).strip()]


@translate_store_errors
def create(mentor, candidate, request_id, title, description='', skills=None, milestones=None):
    """Author a roadmap for the candidate of an accepted mentorship request."""
    try:
        mentorship_request = MentorshipRequest.objects.get(id=request_id)
    except (MentorshipRequest.DoesNotExist, DjangoValidationError):
        raise NotFound('Mentorship request not found.')

    if (
        mentorship_request.status != MentorshipRequest.STATUS_ACCEPTED
        or mentorship_request.mentor_id != mentor.pk
        or mentorship_request.candidate_id != getattr(candidate, 'pk', None)
    ):
        raise AuthorizationDenied('Roadmaps can only be created for an accepted mentorship request.')

    title = (title or '').strip()
    if not title:
        raise ValidationFailed({'title': 'Roadmap title is required.'})
    drafts = [normalize_milestone(raw, position) for position, raw in enumerate(milestones or [], start=1)]
    if not drafts:
        raise ValidationFailed({'milestones': 'Add at least one milestone.'})
    drafts = _ordered(drafts)

    with transaction.atomic():
        roadmap = LearningRoadmap.objects.create(
            mentor=mentor,
            candidate=candidate,
            mentorship_request=mentorship_request,
            title=title,
            description=(description or '').strip(),
            skills=_normalize_skills(skills),
        )
        Milestone.objects.bulk_create([Milestone(roadmap=roadmap, **draft) for draft in drafts])

    logger.info(
        "Roadmap %s created by mentor %s for candidate %s with %d milestones",
        roadmap.id, mentor.pk, candidate.pk, len(drafts),
    )
    return roadmap


def _get_roadmap(roadmap_id, for_update=False):
    qs = LearningRoadmap.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(id=roadmap_id)
    except (LearningRoadmap.DoesNotExist, DjangoValidationError):
        raise NotFound('Roadmap not found.')


def _require_participant(roadmap, user):
    if not roadmap.is_participant(user):
        raise AuthorizationDenied('You do not have access to this roadmap.')


def _require_mentor(roadmap, user):
    if user is None or roadmap.mentor_id != user.pk:
        raise AuthorizationDenied('Only the roadmap mentor can edit milestones.')


def _check_version(roadmap, expected_version):
    if expected_version is None:
        return
    try:
        expected = int(expected_version)
    except (TypeError, ValueError):
        raise ValidationFailed({'expected_version': 'Version must be a whole number.'})
    if expected != roadmap.version:
        logger.info("Stale write to roadmap %s: expected v%s, at v%s", roadmap.id, expected, roadmap.version)
        raise VersionConflict()


def _bump_version(roadmap):
    roadmap.version += 1
    roadmap.save(update_fields=['version', 'updated_at'])


def _renumber(roadmap):
    for position, milestone in enumerate(roadmap.milestones.order_by('order', 'id'), start=1):
        if milestone.order != position:
            milestone.order = position
            milestone.save(update_fields=['order', 'updated_at'])


@translate_store_errors
def get_roadmap(roadmap_id, user):
    roadmap = _get_roadmap(roadmap_id)
    _require_participant(roadmap, user)
    return roadmap


def milestone_at(roadmap, index):
    """Resolve a 0-based position in the ordered milestone list to the milestone."""
    try:
        position = int(index)
    except (TypeError, ValueError):
        raise ValidationFailed({'index': 'Milestone index must be a whole number.'})
    milestones = list(roadmap.milestones.order_by('order'))
    if position < 0 or position >= len(milestones):
        raise NotFound('Milestone not found.')
    return milestones[position]


@translate_store_errors
def update_milestone_progress(roadmap_id, milestone_id, progress, user, expected_version=None):
    """Set a milestone's progress (clamped to 0..100) and bump the roadmap version.

    With ``expected_version`` the write is refused if the roadmap moved on;
    without it the last writer wins.
    """
    value = clamp_progress(progress)

    with transaction.atomic():
        roadmap = _get_roadmap(roadmap_id, for_update=True)
        _require_participant(roadmap, user)
        _check_version(roadmap, expected_version)
        try:
            milestone = roadmap.milestones.get(id=milestone_id)
        except (Milestone.DoesNotExist, DjangoValidationError):
            raise NotFound('Milestone not found.')

        milestone.progress = value
        milestone.save(update_fields=['progress', 'updated_at'])
        _bump_version(roadmap)

    milestone.roadmap = roadmap
    logger.info(
        "Milestone %s on roadmap %s set to %s%% by user %s (v%s)",
        milestone.id, roadmap.id, value, user.pk, roadmap.version,
    )
    return milestone


def update_progress_at(roadmap_id, index, progress, user, expected_version=None):
    """Positional form of ``update_milestone_progress`` for clients that only know indexes."""
    roadmap = get_roadmap(roadmap_id, user)
    milestone = milestone_at(roadmap, index)
    return update_milestone_progress(roadmap.id, milestone.id, progress, user, expected_version=expected_version)


@translate_store_errors
def add_milestone(roadmap_id, user, data, expected_version=None):
    """Insert a milestone at ``data['order']`` (or append) and keep orders dense."""
    with transaction.atomic():
        roadmap = _get_roadmap(roadmap_id, for_update=True)
        _require_mentor(roadmap, user)
        _check_version(roadmap, expected_version)

        count = roadmap.milestones.count()
        draft = normalize_milestone(data, count + 1)
        position = count + 1 if draft['order'] is None else draft['order']
        if position < 1 or position > count + 1:
            raise ValidationFailed({'order': f"Order must be between 1 and {count + 1}."})

        for milestone in roadmap.milestones.filter(order__gte=position).order_by('-order'):
            milestone.order += 1
            milestone.save(update_fields=['order', 'updated_at'])
        draft['order'] = position
        milestone = Milestone.objects.create(roadmap=roadmap, **draft)
        _bump_version(roadmap)

    logger.info("Milestone %s added to roadmap %s at position %d", milestone.id, roadmap.id, position)
    return milestone


@translate_store_errors
def remove_milestone(roadmap_id, milestone_id, user, expected_version=None):
    with transaction.atomic():
        roadmap = _get_roadmap(roadmap_id, for_update=True)
        _require_mentor(roadmap, user)
        _check_version(roadmap, expected_version)
        try:
            milestone = roadmap.milestones.get(id=milestone_id)
        except (Milestone.DoesNotExist, DjangoValidationError):
            raise NotFound('Milestone not found.')
        if roadmap.milestones.count() == 1:
            raise ValidationFailed('A roadmap needs at least one milestone.')

        milestone.delete()
        _renumber(roadmap)
        _bump_version(roadmap)

    logger.info("Milestone %s removed from roadmap %s", milestone_id, roadmap.id)
    return roadmap


def _get_milestone(milestone_id):
    try:
        return Milestone.objects.select_related('roadmap').get(id=milestone_id)
    except (Milestone.DoesNotExist, DjangoValidationError):
        raise NotFound('Milestone not found.')


@translate_store_errors
def add_comment(milestone_id, user, text):
    milestone = _get_milestone(milestone_id)
    _require_participant(milestone.roadmap, user)
    text = (text or '').strip()
    if not text:
        raise ValidationFailed({'comment': 'Comment cannot be empty.'})
    return MilestoneComment.objects.create(milestone=milestone, user=user, comment=text)


@translate_store_errors
def delete_comment(comment_id, user):
    try:
        comment = MilestoneComment.objects.select_related('milestone__roadmap').get(id=comment_id)
    except (MilestoneComment.DoesNotExist, DjangoValidationError):
        raise NotFound('Comment not found.')
    _require_participant(comment.milestone.roadmap, user)
    comment.delete()
    logger.info("Comment %s on milestone %s deleted by user %s", comment_id, comment.milestone_id, user.pk)


@translate_store_errors
def comments_for(milestone_id, user):
    milestone = _get_milestone(milestone_id)
    _require_participant(milestone.roadmap, user)
    return milestone.comments.select_related('user__profile').order_by('created_at')


@translate_store_errors
def roadmaps_for(user, candidate=None, since=None):
    """Roadmaps ``user`` takes part in, for the periodic refresh.

    Pass the previous ``server_time`` back as ``since`` to receive only the
    roadmaps that changed after it. ``server_time`` trails the clock by
    ``ROADMAP_POLL_OVERLAP_SECONDS`` so a write stamped just before this read
    but committed after it is picked up by the next poll; such roadmaps may be
    returned twice.
    """
    overlap = getattr(settings, 'ROADMAP_POLL_OVERLAP_SECONDS', DEFAULT_POLL_OVERLAP_SECONDS)
    server_time = timezone.now() - timedelta(seconds=overlap)
    qs = (
        LearningRoadmap.objects.filter(Q(mentor=user) | Q(candidate=user))
        .select_related('mentor__profile', 'candidate__profile')
        .prefetch_related('milestones')
        .order_by('-updated_at')
    )
    if candidate is not None:
        qs = qs.filter(candidate=candidate)
    if since is not None:
        qs = qs.filter(updated_at__gt=since)

    poll_interval = getattr(settings, 'ROADMAP_POLL_INTERVAL_SECONDS', DEFAULT_POLL_INTERVAL_SECONDS)
    return RoadmapFeed(roadmaps=list(qs), server_time=server_time, poll_interval=poll_interval, since=since)
