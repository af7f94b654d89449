"""
Serializers for the lifecycle API.

Output serializers render models; input serializers only check request shape.
Business rules (ownership, state transitions, skill subsets) live in the
service modules.
"""
from django.contrib.auth import get_user_model
from rest_framework import serializers

from lifecycle import progress as progress_service
from lifecycle.models import (
    ROLE_CHOICES,
    TRACK_CHOICES,
    LearningProgress,
    LearningRoadmap,
    MentorshipRequest,
    Milestone,
    MilestoneComment,
    OnboardingApplication,
    Profile,
    RoleAssignment,
)

User = get_user_model()


def _display_name(user):
    try:
        profile = user.profile
    except Profile.DoesNotExist:
        profile = None
    if profile and profile.display_name:
        return profile.display_name
    return user.get_full_name() or user.email


class UserSummarySerializer(serializers.ModelSerializer):
    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return _display_name(obj)


class ProfileSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source='user.id', read_only=True)

    class Meta:
        model = Profile
        fields = ['user_id', 'email', 'display_name', 'created_at', 'updated_at']
        read_only_fields = fields


class RoleAssignmentSerializer(serializers.ModelSerializer):
    granted_by = serializers.IntegerField(source='granted_by_id', read_only=True)

    class Meta:
        model = RoleAssignment
        fields = ['role', 'granted_by', 'created_at']
        read_only_fields = fields


class OnboardingApplicationSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    is_profile_complete = serializers.BooleanField(read_only=True)

    class Meta:
        model = OnboardingApplication
        fields = [
            'id',
            'user',
            'track',
            'status',
            'payload',
            'is_profile_complete',
            'created_at',
            'updated_at',
            'decided_at',
        ]
        read_only_fields = fields


class MentorshipRequestSerializer(serializers.ModelSerializer):
    """Expose mentorship request information and lightweight profile details."""

    candidate = UserSummarySerializer(read_only=True)
    mentor = UserSummarySerializer(read_only=True)

    class Meta:
        model = MentorshipRequest
        fields = [
            'id',
            'candidate',
            'mentor',
            'message',
            'selected_skills',
            'status',
            'notes',
            'created_at',
            'updated_at',
            'decided_at',
        ]
        read_only_fields = fields


class MilestoneSerializer(serializers.ModelSerializer):
    is_completed = serializers.BooleanField(read_only=True)

    class Meta:
        model = Milestone
        fields = [
            'id',
            'title',
            'description',
            'estimated_hours',
            'order',
            'progress',
            'is_completed',
            'updated_at',
        ]
        read_only_fields = fields


class LearningRoadmapSerializer(serializers.ModelSerializer):
    mentor = UserSummarySerializer(read_only=True)
    candidate = UserSummarySerializer(read_only=True)
    mentorship_request = serializers.UUIDField(source='mentorship_request_id', read_only=True)
    milestones = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()
    total_hours = serializers.SerializerMethodField()
    completed_hours = serializers.SerializerMethodField()

    class Meta:
        model = LearningRoadmap
        fields = [
            'id',
            'mentor',
            'candidate',
            'mentorship_request',
            'title',
            'description',
            'skills',
            'version',
            'milestones',
            'progress',
            'total_hours',
            'completed_hours',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def _milestones(self, obj):
        # Sorted in Python so prefetched rows are reused.
        return sorted(obj.milestones.all(), key=lambda m: m.order)

    def get_milestones(self, obj):
        return MilestoneSerializer(self._milestones(obj), many=True).data

    def get_progress(self, obj):
        return progress_service.roadmap_progress(self._milestones(obj))

    def get_total_hours(self, obj):
        return progress_service.total_hours(self._milestones(obj))

    def get_completed_hours(self, obj):
        return progress_service.completed_hours(self._milestones(obj))


class MilestoneCommentSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    milestone = serializers.UUIDField(source='milestone_id', read_only=True)

    class Meta:
        model = MilestoneComment
        fields = ['id', 'milestone', 'user', 'comment', 'created_at']
        read_only_fields = fields


class LearningProgressSerializer(serializers.ModelSerializer):
    class Meta:
        model = LearningProgress
        fields = ['id', 'skill_name', 'progress_percentage', 'last_updated']
        read_only_fields = fields


# Input serializers

class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6, max_length=128)
    display_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    track = serializers.ChoiceField(choices=TRACK_CHOICES)
    profile = serializers.DictField(required=False)

    def validate_email(self, value):
        return value.strip().lower()


class EnsureRegisteredSerializer(serializers.Serializer):
    track = serializers.ChoiceField(choices=TRACK_CHOICES)
    display_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    profile = serializers.DictField(required=False)


class ProfileUpdateSerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField(required=False)


class RoleGrantSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=ROLE_CHOICES)


class OnboardingPayloadSerializer(serializers.Serializer):
    payload = serializers.DictField()


class ApplicationDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(
        choices=[OnboardingApplication.STATUS_APPROVED, OnboardingApplication.STATUS_REJECTED],
    )


class MentorshipRequestCreateSerializer(serializers.Serializer):
    """Validate inbound mentorship request submissions."""

    mentor_id = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    selected_skills = serializers.ListField(child=serializers.CharField(max_length=100), allow_empty=True)


class MentorshipDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[MentorshipRequest.STATUS_ACCEPTED, MentorshipRequest.STATUS_REJECTED])
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class RoadmapCreateSerializer(serializers.Serializer):
    mentorship_request_id = serializers.UUIDField()
    candidate_id = serializers.IntegerField()
    title = serializers.CharField(max_length=255, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    skills = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    milestones = serializers.ListField(child=serializers.DictField(), allow_empty=True)


class MilestoneProgressSerializer(serializers.Serializer):
    progress = serializers.FloatField()
    expected_version = serializers.IntegerField(required=False, min_value=1)


class MilestoneCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    estimated_hours = serializers.IntegerField(required=False, min_value=0)
    order = serializers.IntegerField(required=False, min_value=1)
    progress = serializers.FloatField(required=False)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class CommentCreateSerializer(serializers.Serializer):
    comment = serializers.CharField(max_length=2000)


class LearningProgressInputSerializer(serializers.Serializer):
    skill_name = serializers.CharField(max_length=160)
    progress_percentage = serializers.FloatField(required=False, default=0)
    create_only = serializers.BooleanField(required=False, default=False)
