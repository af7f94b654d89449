"""
URL configuration for the lifecycle API.
"""
from django.urls import path

from lifecycle import roadmap_views
from lifecycle import views

urlpatterns = [
    # Registration and profile
    path('auth/register', views.register, name='register'),
    path('auth/ensure-registered', views.ensure_registered, name='ensure-registered'),
    path('auth/me', views.current_user, name='current-user'),
    path('auth/profile', views.update_profile, name='update-profile'),

    # Roles (admin)
    path('roles/<int:user_id>', views.user_roles, name='user-roles'),
    path('roles/<int:user_id>/<str:role>', views.revoke_role, name='revoke-role'),

    # Onboarding and the access gate
    path('onboarding/applications', views.onboarding_applications, name='onboarding-applications'),
    path('onboarding/applications/<uuid:application_id>/decide', views.decide_application, name='decide-application'),
    path('onboarding/<str:track>', views.onboarding_application, name='onboarding-application'),
    path('access/<str:track>', views.dashboard_access, name='dashboard-access'),

    # Mentors and mentorship requests
    path('mentors', views.mentor_list, name='mentor-list'),
    path('mentorship/requests', views.mentorship_requests_view, name='mentorship-requests'),
    path('mentorship/requests/<uuid:request_id>/decide', views.respond_to_mentorship_request, name='mentorship-request-decide'),
    path('mentorship/requests/<uuid:request_id>/cancel', views.cancel_mentorship_request, name='mentorship-request-cancel'),

    # Roadmaps
    path('roadmaps', roadmap_views.roadmap_list, name='roadmap-list'),
    path('roadmaps/templates', roadmap_views.roadmap_templates, name='roadmap-templates'),
    path('roadmaps/<uuid:roadmap_id>', roadmap_views.roadmap_detail, name='roadmap-detail'),
    path('roadmaps/<uuid:roadmap_id>/milestones', roadmap_views.milestone_create, name='milestone-create'),
    path('roadmaps/<uuid:roadmap_id>/milestones/index/<int:index>/progress', roadmap_views.milestone_progress_by_index, name='milestone-progress-index'),
    path('roadmaps/<uuid:roadmap_id>/milestones/<uuid:milestone_id>', roadmap_views.milestone_delete, name='milestone-delete'),
    path('roadmaps/<uuid:roadmap_id>/milestones/<uuid:milestone_id>/progress', roadmap_views.milestone_progress, name='milestone-progress'),
    path('roadmaps/<uuid:roadmap_id>/milestones/<uuid:milestone_id>/comments', roadmap_views.milestone_comments, name='milestone-comments'),
    path('comments/<uuid:comment_id>', roadmap_views.comment_delete, name='comment-delete'),

    # Progress
    path('progress/summary', roadmap_views.progress_summary, name='progress-summary'),
    path('progress/mentor-overview', roadmap_views.mentor_overview, name='mentor-overview'),
    path('learning-progress', roadmap_views.learning_progress, name='learning-progress'),
    path('learning-progress/<str:skill_name>', roadmap_views.learning_progress_delete, name='learning-progress-delete'),
]
