"""Dashboard access gate derived from roles and onboarding status."""
from dataclasses import dataclass
from typing import Optional

from lifecycle import onboarding, roles
from lifecycle.exceptions import AuthenticationRequired, ValidationFailed
from lifecycle.models import ROLE_ADMIN, ROLE_CANDIDATE, ROLE_MENTOR, OnboardingApplication

STATE_CHECKING = 'checking'  # client-side only, while the gate is loading
STATE_DENIED = 'denied'
STATE_PENDING = 'pending'
STATE_REJECTED = 'rejected'
STATE_INCOMPLETE = 'incomplete'
STATE_READY = 'ready'

GATED_TRACKS = {ROLE_CANDIDATE, ROLE_MENTOR, ROLE_ADMIN}


@dataclass(frozen=True)
class AccessState:
    track: str
    state: str
    roles: frozenset
    application_status: Optional[str] = None
    is_profile_complete: bool = False

    @property
    def allowed(self):
        return self.state == STATE_READY


def dashboard_state(user, track):
    """Which named state the ``track`` dashboard should render for ``user``."""
    if user is None or not getattr(user, 'is_authenticated', False):
        raise AuthenticationRequired()
    if track not in GATED_TRACKS:
        raise ValidationFailed({'track': f"Unknown dashboard '{track}'."})

    held = frozenset(roles.roles_of(user))

    if track == ROLE_ADMIN:
        state = STATE_READY if held & roles.ADMIN_ROLES else STATE_DENIED
        return AccessState(track=track, state=state, roles=held)

    if track not in held:
        return AccessState(track=track, state=STATE_DENIED, roles=held)

    status = onboarding.status_for(user, track)
    if status.status is None:
        state = STATE_INCOMPLETE
    elif status.status == OnboardingApplication.STATUS_PENDING:
        state = STATE_PENDING
    elif status.status == OnboardingApplication.STATUS_REJECTED:
        state = STATE_REJECTED
    elif not status.is_profile_complete:
        state = STATE_INCOMPLETE
    else:
        state = STATE_READY

    return AccessState(
        track=track,
        state=state,
        roles=held,
        application_status=status.status,
        is_profile_complete=status.is_profile_complete,
    )


def landing_track(user):
    """Dashboard a principal lands on after sign-in; None when they hold no role."""
    held = roles.roles_of(user)
    if held & roles.ADMIN_ROLES:
        return ROLE_ADMIN
    if ROLE_MENTOR in held:
        return ROLE_MENTOR
    if ROLE_CANDIDATE in held:
        return ROLE_CANDIDATE
    return None
