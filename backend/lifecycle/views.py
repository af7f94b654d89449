"""
API views for registration, roles, onboarding, the access gate and the
mentorship request ledger.
"""
import logging

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from lifecycle import access, mentorship_requests, onboarding, registration, roles
from lifecycle.exceptions import AuthorizationDenied, NotFound
from lifecycle.permissions import IsLifecycleAdmin
from lifecycle.serializers import (
    ApplicationDecisionSerializer,
    EnsureRegisteredSerializer,
    MentorshipDecisionSerializer,
    MentorshipRequestCreateSerializer,
    MentorshipRequestSerializer,
    OnboardingApplicationSerializer,
    OnboardingPayloadSerializer,
    ProfileSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
    RoleAssignmentSerializer,
    RoleGrantSerializer,
    UserSummarySerializer,
)

logger = logging.getLogger(__name__)
User = get_user_model()


def _get_user_or_404(user_id):
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound('User not found.')
    return user


def _application_block(application):
    if application is None:
        return None
    return OnboardingApplicationSerializer(application).data


# Registration and profile

@api_view(["POST"])
@permission_classes([AllowAny])
def register(request):
    """
    Create a Firebase account plus the local principal, role and pending application.

    Request Body:
    {
        "email": "user@example.com",
        "password": "securePassword123",
        "display_name": "Ada Lovelace",
        "track": "candidate" | "mentor",
        "profile": {...}  # optional initial onboarding payload
    }
    """
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    user, profile, application = registration.sign_up(
        email=data['email'],
        password=data['password'],
        display_name=data.get('display_name') or '',
        track=data['track'],
        initial_payload=data.get('profile'),
    )
    return Response(
        {
            'user': UserSummarySerializer(user).data,
            'profile': ProfileSerializer(profile).data,
            'application': _application_block(application),
            'message': 'Registration successful. Your application is pending approval.',
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def ensure_registered(request):
    """Idempotently give the signed-in principal a role and an application for a track."""
    serializer = EnsureRegisteredSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    profile, application = registration.ensure_registered(
        request.user,
        data['track'],
        email=request.user.email,
        display_name=data.get('display_name') or None,
        initial_payload=data.get('profile'),
    )
    return Response({
        'profile': ProfileSerializer(profile).data,
        'roles': sorted(roles.roles_of(request.user)),
        'application': _application_block(application),
    })


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def current_user(request):
    """Who is signed in, which roles they hold and where they should land."""
    user = request.user
    profile = registration.ensure_profile(user)
    applications = {
        track: _application_block(onboarding.current(user, track))
        for track in sorted(onboarding.VALID_TRACKS)
    }
    return Response({
        'user': UserSummarySerializer(user).data,
        'profile': ProfileSerializer(profile).data,
        'roles': sorted(roles.roles_of(user)),
        'landing_track': access.landing_track(user),
        'applications': applications,
    })


@api_view(["PATCH"])
@permission_classes([IsAuthenticated])
def update_profile(request):
    serializer = ProfileUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    profile = registration.update_profile(request.user, **serializer.validated_data)
    return Response(ProfileSerializer(profile).data)


# Roles (admin surface)

@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def user_roles(request, user_id):
    """
    GET: List a principal's roles (self, or any principal for admins)
    POST: Grant a role ({"role": "mentor"})
    """
    target = _get_user_or_404(user_id)

    if request.method == "GET":
        if target.pk != request.user.pk and not roles.is_admin(request.user):
            raise AuthorizationDenied('You can only view your own roles.')
        assignments = target.role_assignments.order_by('created_at')
        return Response({
            'user': UserSummarySerializer(target).data,
            'roles': RoleAssignmentSerializer(assignments, many=True).data,
        })

    serializer = RoleGrantSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    assignment = roles.admin_assign(request.user, target, serializer.validated_data['role'])
    return Response(RoleAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def revoke_role(request, user_id, role):
    target = _get_user_or_404(user_id)
    roles.admin_revoke(request.user, target, role)
    return Response(status=status.HTTP_204_NO_CONTENT)


# Onboarding

@api_view(["GET", "POST", "PUT"])
@permission_classes([IsAuthenticated])
def onboarding_application(request, track):
    """
    GET: Current application status for the track
    POST: Submit an application (no-op if one is already open)
    PUT: Save the full onboarding profile into the current application
    """
    if request.method == "GET":
        current = onboarding.status_for(request.user, track)
        return Response({
            'track': track,
            'status': current.status,
            'is_profile_complete': current.is_profile_complete,
            'application': _application_block(current.application),
        })

    serializer = OnboardingPayloadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    payload = serializer.validated_data['payload']

    if request.method == "POST":
        application = onboarding.submit(request.user, track, payload)
        return Response(OnboardingApplicationSerializer(application).data, status=status.HTTP_201_CREATED)

    application = onboarding.complete_profile(request.user, track, payload)
    return Response(OnboardingApplicationSerializer(application).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsLifecycleAdmin])
def onboarding_applications(request):
    """Admin review queue, filterable by ?status= and ?track=."""
    applications = onboarding.list_applications(
        status=request.query_params.get('status') or None,
        track=request.query_params.get('track') or None,
    )
    return Response(OnboardingApplicationSerializer(applications, many=True).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def decide_application(request, application_id):
    serializer = ApplicationDecisionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    application = onboarding.decide(application_id, serializer.validated_data['decision'], request.user)
    return Response(OnboardingApplicationSerializer(application).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def dashboard_access(request, track):
    """Named access state for a dashboard; a closed gate is not an error."""
    state = access.dashboard_state(request.user, track)
    return Response({
        'track': state.track,
        'state': state.state,
        'allowed': state.allowed,
        'roles': sorted(state.roles),
        'application_status': state.application_status,
        'is_profile_complete': state.is_profile_complete,
    })


# Mentors and mentorship requests

@api_view(["GET"])
@permission_classes([IsAuthenticated])
def mentor_list(request):
    """Approved mentors and the skills they offer. Optional ?skill= filter."""
    mentors = mentorship_requests.list_mentors(skill=request.query_params.get('skill'))
    return Response([
        {
            'mentor': UserSummarySerializer(entry['mentor']).data,
            'skills': entry['skills'],
            'profile': entry['profile'],
        }
        for entry in mentors
    ])


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def mentorship_requests_view(request):
    """List incoming/outgoing mentorship requests or create a new request."""
    if request.method == "GET":
        status_filter = request.query_params.get('status') or None
        return Response({
            'incoming': MentorshipRequestSerializer(
                mentorship_requests.incoming_for(request.user, status=status_filter), many=True,
            ).data,
            'outgoing': MentorshipRequestSerializer(
                mentorship_requests.outgoing_for(request.user, status=status_filter), many=True,
            ).data,
        })

    serializer = MentorshipRequestCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    mentor = User.objects.filter(pk=data['mentor_id']).first()
    mentorship_request = mentorship_requests.create(
        request.user,
        mentor,
        message=data.get('message', ''),
        selected_skills=data['selected_skills'],
    )
    return Response(MentorshipRequestSerializer(mentorship_request).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def respond_to_mentorship_request(request, request_id):
    """Accept or reject a mentorship request if you are the addressed mentor."""
    serializer = MentorshipDecisionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    mentorship_request = mentorship_requests.decide(
        request_id,
        serializer.validated_data['decision'],
        request.user,
        notes=serializer.validated_data.get('notes'),
    )
    return Response(MentorshipRequestSerializer(mentorship_request).data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def cancel_mentorship_request(request, request_id):
    """Allow a requester to cancel a pending mentorship request."""
    mentorship_request = mentorship_requests.cancel(request_id, request.user)
    return Response(MentorshipRequestSerializer(mentorship_request).data)
