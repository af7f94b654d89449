import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q


ROLE_CANDIDATE = 'candidate'
ROLE_MENTOR = 'mentor'
ROLE_ADMIN = 'admin'
ROLE_SUPER_ADMIN = 'super_admin'

ROLE_CHOICES = [
    (ROLE_CANDIDATE, 'Candidate'),
    (ROLE_MENTOR, 'Mentor'),
    (ROLE_ADMIN, 'Admin'),
    (ROLE_SUPER_ADMIN, 'Super Admin'),
]

TRACK_CHOICES = [
    (ROLE_CANDIDATE, 'Candidate'),
    (ROLE_MENTOR, 'Mentor'),
]


class Profile(models.Model):
    """Display information for a principal. The Django user id is the principal id."""

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='profile')
    email = models.EmailField(blank=True)
    display_name = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name or self.email or str(self.user_id)


class RoleAssignment(models.Model):
    """A capability label granted to a principal, independent of onboarding approval."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='role_assignments')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'role'], name='unique_role_assignment'),
        ]

    def __str__(self):
        return f"{self.user_id}:{self.role}"


class OnboardingApplicationQuerySet(models.QuerySet):
    def for_track(self, user, track):
        return self.filter(user=user, track=track)

    def current(self, user, track):
        """Latest application row for (user, track), or None."""
        return self.for_track(user, track).order_by('-created_at').first()


class OnboardingApplication(models.Model):
    """Approval workflow record gating dashboard access for one role track.

    Rows for a (user, track) pair form a version list; ``current()`` is the
    newest one. Only one row per pair may be outside the terminal ``rejected``
    state at a time.
    """

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='onboarding_applications')
    track = models.CharField(max_length=20, choices=TRACK_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    decided_at = models.DateTimeField(null=True, blank=True)
    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='onboarding_decisions',
    )

    objects = OnboardingApplicationQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'track'], name='lc_app_user_track'),
            models.Index(fields=['status'], name='lc_app_status'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'track'],
                condition=~Q(status='rejected'),
                name='unique_open_onboarding_application',
            ),
        ]

    def __str__(self):
        return f"{self.track} application {self.user_id} ({self.status})"

    @property
    def is_profile_complete(self):
        # Registration writes a single-key payload; anything richer counts as complete.
        return isinstance(self.payload, dict) and len(self.payload.keys()) > 1


class MentorshipRequest(models.Model):
    """A candidate's ask to be mentored by a specific mentor."""

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    candidate = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_mentorship_requests')
    mentor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_mentorship_requests')
    message = models.TextField(blank=True)
    selected_skills = models.JSONField(default=list)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    decided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['candidate', 'status'], name='lc_mr_candidate_status'),
            models.Index(fields=['mentor', 'status'], name='lc_mr_mentor_status'),
        ]
        constraints = [
            models.UniqueConstraint(fields=['candidate', 'mentor'], name='unique_mentorship_request_pair'),
        ]

    def __str__(self):
        return f"{self.candidate_id} -> {self.mentor_id} ({self.status})"


class LearningRoadmap(models.Model):
    """Mentor-authored curriculum for one accepted mentorship pairing."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    mentor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='authored_roadmaps')
    candidate = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='roadmaps')
    mentorship_request = models.ForeignKey(MentorshipRequest, on_delete=models.CASCADE, related_name='roadmaps')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    skills = models.JSONField(default=list, blank=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['mentor', 'candidate'], name='lc_roadmap_pair'),
            models.Index(fields=['updated_at'], name='lc_roadmap_updated'),
        ]

    def __str__(self):
        return self.title

    def is_participant(self, user):
        return user is not None and user.pk in (self.mentor_id, self.candidate_id)


class Milestone(models.Model):
    """One step of a roadmap. Completion is derived from ``progress``."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    roadmap = models.ForeignKey(LearningRoadmap, on_delete=models.CASCADE, related_name='milestones')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    estimated_hours = models.PositiveIntegerField(default=0)
    order = models.PositiveIntegerField()
    progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['roadmap', 'order']

    def __str__(self):
        return f"{self.order}. {self.title}"

    @property
    def is_completed(self):
        return self.progress == 100


class MilestoneComment(models.Model):
    """Threaded note on a milestone, keyed by the milestone's stable id."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    milestone = models.ForeignKey(Milestone, on_delete=models.CASCADE, related_name='comments')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='milestone_comments')
    comment = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"Comment({self.milestone_id}, {self.user_id})"


class LearningProgress(models.Model):
    """Self-reported progress on a skill, outside of any roadmap."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='learning_progress')
    skill_name = models.CharField(max_length=160)
    progress_percentage = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-last_updated']
        constraints = [
            models.UniqueConstraint(fields=['user', 'skill_name'], name='unique_learning_progress_skill'),
        ]

    def __str__(self):
        return f"{self.skill_name}: {self.progress_percentage}%"
