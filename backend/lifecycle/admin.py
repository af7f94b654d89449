from django.contrib import admin, messages

from lifecycle import onboarding
from lifecycle.exceptions import LifecycleError
from lifecycle.models import (
    LearningProgress,
    LearningRoadmap,
    MentorshipRequest,
    Milestone,
    MilestoneComment,
    OnboardingApplication,
    Profile,
    RoleAssignment,
)


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'display_name', 'email', 'created_at']
    search_fields = ['user__username', 'user__email', 'display_name', 'email']


@admin.register(RoleAssignment)
class RoleAssignmentAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'granted_by', 'created_at']
    list_filter = ['role']
    search_fields = ['user__username', 'user__email']
    raw_id_fields = ['user', 'granted_by']


def _decide_selected(modeladmin, request, queryset, decision):
    decided = 0
    for application in queryset:
        try:
            onboarding.decide(application.id, decision, request.user)
            decided += 1
        except LifecycleError as exc:
            modeladmin.message_user(request, f"{application}: {exc.detail}", level=messages.ERROR)
    if decided:
        modeladmin.message_user(request, f"{decided} application(s) {decision}.")


@admin.register(OnboardingApplication)
class OnboardingApplicationAdmin(admin.ModelAdmin):
    list_display = ['user', 'track', 'status', 'created_at', 'decided_at', 'decided_by']
    list_filter = ['track', 'status']
    search_fields = ['user__username', 'user__email']
    readonly_fields = ['created_at', 'updated_at', 'decided_at', 'decided_by']
    actions = ['approve_applications', 'reject_applications']

    @admin.action(description='Approve selected applications')
    def approve_applications(self, request, queryset):
        _decide_selected(self, request, queryset, OnboardingApplication.STATUS_APPROVED)

    @admin.action(description='Reject selected applications')
    def reject_applications(self, request, queryset):
        _decide_selected(self, request, queryset, OnboardingApplication.STATUS_REJECTED)


@admin.register(MentorshipRequest)
class MentorshipRequestAdmin(admin.ModelAdmin):
    list_display = ['candidate', 'mentor', 'status', 'created_at', 'decided_at']
    list_filter = ['status']
    search_fields = ['candidate__email', 'mentor__email']


class MilestoneInline(admin.TabularInline):
    model = Milestone
    extra = 0
    fields = ['order', 'title', 'estimated_hours', 'progress']


@admin.register(LearningRoadmap)
class LearningRoadmapAdmin(admin.ModelAdmin):
    list_display = ['title', 'mentor', 'candidate', 'version', 'updated_at']
    search_fields = ['title', 'mentor__email', 'candidate__email']
    readonly_fields = ['version', 'created_at', 'updated_at']
    inlines = [MilestoneInline]


@admin.register(Milestone)
class MilestoneAdmin(admin.ModelAdmin):
    list_display = ['title', 'roadmap', 'order', 'progress', 'estimated_hours']
    search_fields = ['title', 'roadmap__title']


@admin.register(MilestoneComment)
class MilestoneCommentAdmin(admin.ModelAdmin):
    list_display = ['milestone', 'user', 'created_at']
    search_fields = ['comment', 'user__email']


@admin.register(LearningProgress)
class LearningProgressAdmin(admin.ModelAdmin):
    list_display = ['user', 'skill_name', 'progress_percentage', 'last_updated']
    search_fields = ['user__email', 'skill_name']
