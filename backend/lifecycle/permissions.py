from rest_framework import permissions

from lifecycle import roles
from lifecycle.models import ROLE_CANDIDATE, ROLE_MENTOR


class HasLifecycleRole(permissions.BasePermission):
    """
    Allow access only to authenticated principals holding one of ``required_roles``.
    """

    required_roles = ()
    message = 'You do not have the role required for this action.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return roles.has_role(user, *self.required_roles)


class IsLifecycleAdmin(HasLifecycleRole):
    required_roles = tuple(roles.ADMIN_ROLES)
    message = 'Admin access required for this action.'


class IsMentor(HasLifecycleRole):
    required_roles = (ROLE_MENTOR,)
    message = 'Only mentors can perform this action.'


class IsCandidate(HasLifecycleRole):
    required_roles = (ROLE_CANDIDATE,)
    message = 'Only candidates can perform this action.'
