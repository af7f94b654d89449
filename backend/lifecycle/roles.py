"""Role assignment registry: which capability labels a principal holds."""
import logging

from django.db import DatabaseError, IntegrityError, transaction

from lifecycle.exceptions import AssignmentFailed, AuthorizationDenied, ValidationFailed, translate_store_errors
from lifecycle.models import (
    ROLE_ADMIN,
    ROLE_CHOICES,
    ROLE_SUPER_ADMIN,
    RoleAssignment,
)

logger = logging.getLogger(__name__)

VALID_ROLES = {value for value, _ in ROLE_CHOICES}
ADMIN_ROLES = {ROLE_ADMIN, ROLE_SUPER_ADMIN}


def _validate_role(role):
    if role not in VALID_ROLES:
        raise ValidationFailed({'role': f"Unknown role '{role}'."})


def assign(user, role, granted_by=None):
    """Grant ``role`` to ``user``. Re-granting returns the existing assignment."""
    _validate_role(role)
    try:
        existing = RoleAssignment.objects.filter(user=user, role=role).first()
        if existing:
            return existing
        with transaction.atomic():
            assignment = RoleAssignment.objects.create(user=user, role=role, granted_by=granted_by)
    except IntegrityError:
        # Lost a race with a concurrent grant of the same role.
        return RoleAssignment.objects.get(user=user, role=role)
    except DatabaseError as exc:
        logger.error("Failed to assign role %s to user %s: %s", role, user.pk, exc)
        raise AssignmentFailed() from exc

    logger.info("Assigned role %s to user %s (granted_by=%s)", role, user.pk, getattr(granted_by, 'pk', None))
    return assignment


def revoke(user, role):
    """Remove ``role`` from ``user``. Revoking an absent role is a no-op."""
    _validate_role(role)
    try:
        deleted, _ = RoleAssignment.objects.filter(user=user, role=role).delete()
    except DatabaseError as exc:
        logger.error("Failed to revoke role %s from user %s: %s", role, user.pk, exc)
        raise AssignmentFailed() from exc
    return deleted > 0


@translate_store_errors
def roles_of(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        return set()
    return set(RoleAssignment.objects.filter(user=user).values_list('role', flat=True))


def has_role(user, *roles):
    return bool(roles_of(user) & set(roles))


def is_admin(user):
    return has_role(user, *ADMIN_ROLES)


def require_admin(user):
    if not is_admin(user):
        raise AuthorizationDenied('Admin access required for this action.')


def _check_can_manage(actor, role):
    require_admin(actor)
    if role in ADMIN_ROLES and not has_role(actor, ROLE_SUPER_ADMIN):
        raise AuthorizationDenied('Only a super admin can manage admin roles.')


def admin_assign(actor, user, role):
    """Admin-surface grant: checks the actor's own roles first."""
    _validate_role(role)
    _check_can_manage(actor, role)
    return assign(user, role, granted_by=actor)


def admin_revoke(actor, user, role):
    _validate_role(role)
    _check_can_manage(actor, role)
    return revoke(user, role)
