"""
API views for learning roadmaps, milestone progress, comments and progress
summaries.
"""
import logging

from django.contrib.auth import get_user_model
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from lifecycle import progress, roadmaps
from lifecycle.exceptions import NotFound, ValidationFailed
from lifecycle.permissions import IsMentor
from lifecycle.serializers import (
    CommentCreateSerializer,
    LearningProgressInputSerializer,
    LearningProgressSerializer,
    LearningRoadmapSerializer,
    MilestoneCommentSerializer,
    MilestoneCreateSerializer,
    MilestoneProgressSerializer,
    MilestoneSerializer,
    RoadmapCreateSerializer,
    UserSummarySerializer,
)

logger = logging.getLogger(__name__)
User = get_user_model()


def _parse_since(raw):
    if not raw:
        return None
    since = parse_datetime(raw)
    if since is None:
        raise ValidationFailed({'since': 'Use an ISO 8601 timestamp.'})
    return since


def _parse_candidate_id(raw):
    if not raw:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed({'candidate_id': 'Use a numeric user id.'})


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def roadmap_list(request):
    """
    GET: Roadmaps the user mentors or follows. Supports ?candidate_id= and
         ?since=<server_time from the previous poll>.
    POST: Mentor creates a roadmap for an accepted mentorship request.
    """
    if request.method == "GET":
        candidate = None
        candidate_id = _parse_candidate_id(request.query_params.get('candidate_id'))
        if candidate_id is not None:
            candidate = User.objects.filter(pk=candidate_id).first()
            if candidate is None:
                raise NotFound('Candidate not found.')
        feed = roadmaps.roadmaps_for(
            request.user,
            candidate=candidate,
            since=_parse_since(request.query_params.get('since')),
        )
        return Response({
            'roadmaps': LearningRoadmapSerializer(feed.roadmaps, many=True).data,
            'server_time': feed.server_time.isoformat(),
            'poll_interval': feed.poll_interval,
        })

    serializer = RoadmapCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    candidate = User.objects.filter(pk=data['candidate_id']).first()
    if candidate is None:
        raise NotFound('Candidate not found.')
    roadmap = roadmaps.create(
        request.user,
        candidate,
        data['mentorship_request_id'],
        title=data['title'],
        description=data.get('description', ''),
        skills=data.get('skills'),
        milestones=data['milestones'],
    )
    return Response(LearningRoadmapSerializer(roadmap).data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def roadmap_detail(request, roadmap_id):
    roadmap = roadmaps.get_roadmap(roadmap_id, request.user)
    return Response(LearningRoadmapSerializer(roadmap).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsMentor])
def roadmap_templates(request):
    """Milestone templates, all of them or one skill via ?skill=."""
    skill = request.query_params.get('skill')
    if skill:
        milestones = roadmaps.template_milestones(skill)
        if not milestones:
            raise NotFound(f"No template for {skill}.")
        return Response({'skill': skill, 'milestones': milestones})
    return Response({
        name: roadmaps.template_milestones(name) for name in roadmaps.MILESTONE_TEMPLATES
    })


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def milestone_create(request, roadmap_id):
    serializer = MilestoneCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    expected_version = data.pop('expected_version', None)
    milestone = roadmaps.add_milestone(roadmap_id, request.user, data, expected_version=expected_version)
    return Response(MilestoneSerializer(milestone).data, status=status.HTTP_201_CREATED)


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def milestone_delete(request, roadmap_id, milestone_id):
    expected_version = request.query_params.get('expected_version')
    roadmap = roadmaps.remove_milestone(roadmap_id, milestone_id, request.user, expected_version=expected_version)
    return Response(LearningRoadmapSerializer(roadmap).data)


def _progress_response(milestone):
    roadmap = milestone.roadmap
    return Response({
        'milestone': MilestoneSerializer(milestone).data,
        'roadmap_id': str(roadmap.id),
        'version': roadmap.version,
        'roadmap_progress': progress.roadmap_progress(roadmap.milestones.all()),
    })


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def milestone_progress(request, roadmap_id, milestone_id):
    """
    Update milestone progress.

    Payload: {"progress": 60, "expected_version": 3}
    """
    serializer = MilestoneProgressSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    milestone = roadmaps.update_milestone_progress(
        roadmap_id,
        milestone_id,
        serializer.validated_data['progress'],
        request.user,
        expected_version=serializer.validated_data.get('expected_version'),
    )
    return _progress_response(milestone)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def milestone_progress_by_index(request, roadmap_id, index):
    """Same as milestone_progress, addressing the milestone by its 0-based position."""
    serializer = MilestoneProgressSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    milestone = roadmaps.update_progress_at(
        roadmap_id,
        index,
        serializer.validated_data['progress'],
        request.user,
        expected_version=serializer.validated_data.get('expected_version'),
    )
    return _progress_response(milestone)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def milestone_comments(request, roadmap_id, milestone_id):
    roadmap = roadmaps.get_roadmap(roadmap_id, request.user)
    if not roadmap.milestones.filter(id=milestone_id).exists():
        raise NotFound('Milestone not found.')

    if request.method == "GET":
        comments = roadmaps.comments_for(milestone_id, request.user)
        return Response(MilestoneCommentSerializer(comments, many=True).data)

    serializer = CommentCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    comment = roadmaps.add_comment(milestone_id, request.user, serializer.validated_data['comment'])
    return Response(MilestoneCommentSerializer(comment).data, status=status.HTTP_201_CREATED)


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def comment_delete(request, comment_id):
    roadmaps.delete_comment(comment_id, request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)


# Progress summaries

@api_view(["GET"])
@permission_classes([IsAuthenticated])
def progress_summary(request):
    return Response(progress.candidate_summary(request.user))


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsMentor])
def mentor_overview(request):
    overview = progress.mentor_overview(request.user)
    for entry in overview:
        entry['candidate'] = UserSummarySerializer(entry['candidate']).data
    return Response(overview)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def learning_progress(request):
    """
    GET: The user's skill progress, most recently updated first
    POST: {"skill_name": "SQL", "progress_percentage": 40}; set create_only to
          refuse skills that are already tracked
    """
    if request.method == "GET":
        records = progress.learning_progress_for(request.user)
        return Response(LearningProgressSerializer(records, many=True).data)

    serializer = LearningProgressInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    if data['create_only']:
        record = progress.add_skill(request.user, data['skill_name'], data['progress_percentage'])
        return Response(LearningProgressSerializer(record).data, status=status.HTTP_201_CREATED)

    record = progress.update_learning_progress(request.user, data['skill_name'], data['progress_percentage'])
    return Response(LearningProgressSerializer(record).data)


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def learning_progress_delete(request, skill_name):
    progress.remove_skill(request.user, skill_name)
    return Response(status=status.HTTP_204_NO_CONTENT)
