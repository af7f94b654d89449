"""
Progress aggregation for roadmaps and candidates, plus per-skill learning
progress.

Roadmap-level numbers are never stored; they are recomputed from milestone
rows every time they are read.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import IntegrityError, transaction

from lifecycle.exceptions import DuplicateRequest, NotFound, ValidationFailed, translate_store_errors
from lifecycle.models import LearningProgress, LearningRoadmap

logger = logging.getLogger(__name__)


def round_half_up(value):
    """Round to the nearest integer with halves going up (49.5 -> 50)."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def clamp_progress(value, field='progress'):
    """Parse a progress value and clamp it into [0, 100]."""
    if value is None or isinstance(value, bool):
        raise ValidationFailed({field: 'Progress must be a number between 0 and 100.'})
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailed({field: 'Progress must be a number between 0 and 100.'})
    if not number.is_finite():
        raise ValidationFailed({field: 'Progress must be a number between 0 and 100.'})
    number = min(max(number, Decimal(0)), Decimal(100))
    return round_half_up(number)


def _field(milestone, name, legacy_name=None):
    if isinstance(milestone, dict):
        value = milestone.get(name)
        if value is None and legacy_name:
            value = milestone.get(legacy_name)
        return value or 0
    return getattr(milestone, name, 0) or 0


def _as_list(milestones):
    if isinstance(milestones, LearningRoadmap):
        return list(milestones.milestones.all())
    return list(milestones or [])


def roadmap_progress(milestones):
    """Mean milestone progress, rounded half-up; 0 when there are no milestones."""
    items = _as_list(milestones)
    if not items:
        return 0
    total = sum(_field(m, 'progress') for m in items)
    return round_half_up(Decimal(total) / len(items))


def completed_hours(milestones):
    """Hours earned so far: each milestone contributes progress% of its estimate."""
    items = _as_list(milestones)
    total = sum(
        Decimal(_field(m, 'progress')) * Decimal(_field(m, 'estimated_hours', 'estimatedHours'))
        for m in items
    )
    return float(total / 100)


def total_hours(milestones):
    return sum(_field(m, 'estimated_hours', 'estimatedHours') for m in _as_list(milestones))


def completed_count(milestones):
    return sum(1 for m in _as_list(milestones) if _field(m, 'progress') == 100)


def summarize_roadmap(roadmap):
    milestones = list(roadmap.milestones.all())
    return {
        'roadmap_id': str(roadmap.id),
        'title': roadmap.title,
        'progress': roadmap_progress(milestones),
        'total_milestones': len(milestones),
        'completed_milestones': completed_count(milestones),
        'total_hours': total_hours(milestones),
        'completed_hours': completed_hours(milestones),
    }


@translate_store_errors
def candidate_summary(candidate):
    """Roll-up across every roadmap the candidate follows."""
    roadmaps = (
        LearningRoadmap.objects.filter(candidate=candidate)
        .prefetch_related('milestones')
        .order_by('-created_at')
    )
    summaries = [summarize_roadmap(roadmap) for roadmap in roadmaps]
    overall = 0
    if summaries:
        overall = round_half_up(Decimal(sum(s['progress'] for s in summaries)) / len(summaries))
    return {
        'roadmap_count': len(summaries),
        'total_milestones': sum(s['total_milestones'] for s in summaries),
        'completed_milestones': sum(s['completed_milestones'] for s in summaries),
        'total_hours': sum(s['total_hours'] for s in summaries),
        'completed_hours': sum(s['completed_hours'] for s in summaries),
        'overall_progress': overall,
        'roadmaps': summaries,
    }


@translate_store_errors
def mentor_overview(mentor):
    """Average roadmap progress for each candidate this mentor guides."""
    roadmaps = (
        LearningRoadmap.objects.filter(mentor=mentor)
        .select_related('candidate__profile')
        .prefetch_related('milestones')
        .order_by('candidate_id', '-created_at')
    )
    by_candidate = {}
    for roadmap in roadmaps:
        entry = by_candidate.setdefault(roadmap.candidate_id, {'candidate': roadmap.candidate, 'roadmaps': []})
        entry['roadmaps'].append(summarize_roadmap(roadmap))

    overview = []
    for candidate_id, entry in by_candidate.items():
        summaries = entry['roadmaps']
        average = round_half_up(Decimal(sum(s['progress'] for s in summaries)) / len(summaries))
        overview.append({
            'candidate_id': candidate_id,
            'candidate': entry['candidate'],
            'roadmap_count': len(summaries),
            'average_progress': average,
            'completed_milestones': sum(s['completed_milestones'] for s in summaries),
            'total_milestones': sum(s['total_milestones'] for s in summaries),
            'roadmaps': summaries,
        })
    return overview


# Skill learning progress

def _skill_label(skill_name):
    label = (skill_name or '').strip()
    if not label:
        raise ValidationFailed({'skill_name': 'Skill name is required.'})
    return label


@translate_store_errors
def update_learning_progress(user, skill_name, progress):
    """Upsert the user's progress on a skill."""
    label = _skill_label(skill_name)
    value = clamp_progress(progress, field='progress_percentage')
    record, created = LearningProgress.objects.update_or_create(
        user=user,
        skill_name=label,
        defaults={'progress_percentage': value},
    )
    logger.debug("Learning progress %s for user %s: %s%%", label, user.pk, value)
    return record


@translate_store_errors
def add_skill(user, skill_name, initial_progress=0):
    label = _skill_label(skill_name)
    value = clamp_progress(initial_progress, field='progress_percentage')
    if LearningProgress.objects.filter(user=user, skill_name=label).exists():
        raise DuplicateRequest(f"You are already tracking {label}.")
    try:
        with transaction.atomic():
            return LearningProgress.objects.create(user=user, skill_name=label, progress_percentage=value)
    except IntegrityError:
        raise DuplicateRequest(f"You are already tracking {label}.")


@translate_store_errors
def remove_skill(user, skill_name):
    label = _skill_label(skill_name)
    deleted, _ = LearningProgress.objects.filter(user=user, skill_name=label).delete()
    if not deleted:
        raise NotFound(f"You are not tracking {label}.")


@translate_store_errors
def learning_progress_for(user):
    return LearningProgress.objects.filter(user=user).order_by('-last_updated')
