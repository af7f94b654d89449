import logging

from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver
from django.utils import timezone

from lifecycle.models import LearningRoadmap, MilestoneComment, RoleAssignment

logger = logging.getLogger(__name__)


def _client_ip(request):
    if request is None:
        return None
    xff = request.META.get('HTTP_X_FORWARDED_FOR')
    if xff:
        return xff.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


@receiver(user_login_failed)
def log_login_failed(sender, credentials, request=None, **kwargs):
    """Log details when a login attempt fails (e.g., admin form)."""
    username = None
    if isinstance(credentials, dict):
        username = credentials.get('username') or credentials.get('email')
    logger.warning("AUTH login_failed username=%s ip=%s", username, _client_ip(request))


@receiver(user_logged_in)
def log_user_logged_in(sender, request, user, **kwargs):
    held = sorted(RoleAssignment.objects.filter(user=user).values_list('role', flat=True))
    logger.info(
        "AUTH login_success user_id=%s username=%s roles=%s ip=%s",
        user.pk, user.get_username(), ','.join(held) or '-', _client_ip(request),
    )


@receiver(user_logged_out)
def log_user_logged_out(sender, request, user, **kwargs):
    logger.info("AUTH logout user_id=%s ip=%s", getattr(user, 'pk', None), _client_ip(request))


@receiver(post_delete, sender=RoleAssignment)
def log_role_revoked(sender, instance, **kwargs):
    logger.info("ROLE revoked user_id=%s role=%s", instance.user_id, instance.role)


@receiver(post_save, sender=MilestoneComment)
@receiver(post_delete, sender=MilestoneComment)
def touch_roadmap_on_comment(sender, instance, **kwargs):
    """Comments count as roadmap activity for pollers using ``since``."""
    roadmap_id = (
        LearningRoadmap.objects.filter(milestones__id=instance.milestone_id)
        .values_list('id', flat=True)
        .first()
    )
    if roadmap_id:
        LearningRoadmap.objects.filter(pk=roadmap_id).update(updated_at=timezone.now())
