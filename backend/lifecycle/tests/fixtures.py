"""
Test fixtures and factories for creating test data.
Uses factory_boy for consistent test data generation.
"""
import factory
from factory.django import DjangoModelFactory
from django.contrib.auth import get_user_model

from lifecycle.models import (
    ROLE_ADMIN,
    ROLE_CANDIDATE,
    ROLE_MENTOR,
    ROLE_SUPER_ADMIN,
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


class UserFactory(DjangoModelFactory):
    """Factory for creating test users"""
    class Meta:
        model = User

    username = factory.Sequence(lambda n: f'uid{n}')
    email = factory.Sequence(lambda n: f'user{n}@example.com')
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True


class ProfileFactory(DjangoModelFactory):
    class Meta:
        model = Profile

    user = factory.SubFactory(UserFactory)
    email = factory.LazyAttribute(lambda obj: obj.user.email.lower())
    display_name = factory.Faker('name')


class RoleAssignmentFactory(DjangoModelFactory):
    class Meta:
        model = RoleAssignment

    user = factory.SubFactory(UserFactory)
    role = ROLE_CANDIDATE


class OnboardingApplicationFactory(DjangoModelFactory):
    """Pending application with a registration-style single-key payload"""
    class Meta:
        model = OnboardingApplication

    user = factory.SubFactory(UserFactory)
    track = ROLE_CANDIDATE
    status = OnboardingApplication.STATUS_PENDING
    payload = factory.LazyFunction(lambda: {'fullName': 'Test User'})


class MentorshipRequestFactory(DjangoModelFactory):
    class Meta:
        model = MentorshipRequest

    candidate = factory.SubFactory(UserFactory)
    mentor = factory.SubFactory(UserFactory)
    message = factory.Faker('sentence')
    selected_skills = factory.LazyFunction(lambda: ['Python'])
    status = MentorshipRequest.STATUS_PENDING


class LearningRoadmapFactory(DjangoModelFactory):
    class Meta:
        model = LearningRoadmap

    mentorship_request = factory.SubFactory(MentorshipRequestFactory, status=MentorshipRequest.STATUS_ACCEPTED)
    mentor = factory.LazyAttribute(lambda obj: obj.mentorship_request.mentor)
    candidate = factory.LazyAttribute(lambda obj: obj.mentorship_request.candidate)
    title = factory.Faker('catch_phrase')
    description = factory.Faker('text', max_nb_chars=120)
    skills = factory.LazyFunction(lambda: ['Python'])


class MilestoneFactory(DjangoModelFactory):
    class Meta:
        model = Milestone

    roadmap = factory.SubFactory(LearningRoadmapFactory)
    title = factory.Sequence(lambda n: f'Milestone {n}')
    description = factory.Faker('sentence')
    estimated_hours = 10
    order = factory.Sequence(lambda n: n + 1)
    progress = 0


class MilestoneCommentFactory(DjangoModelFactory):
    class Meta:
        model = MilestoneComment

    milestone = factory.SubFactory(MilestoneFactory)
    user = factory.LazyAttribute(lambda obj: obj.milestone.roadmap.candidate)
    comment = factory.Faker('sentence')


class LearningProgressFactory(DjangoModelFactory):
    class Meta:
        model = LearningProgress

    user = factory.SubFactory(UserFactory)
    skill_name = factory.Sequence(lambda n: f'Skill{n}')
    progress_percentage = 0


def complete_payload(**extra):
    payload = {'fullName': 'Test User', 'bio': 'Ready to learn', 'experience': '3 years'}
    payload.update(extra)
    return payload


def make_candidate(status=OnboardingApplication.STATUS_APPROVED, complete=True, **user_kwargs):
    """A user with the candidate role and a candidate application in ``status``."""
    user = UserFactory(**user_kwargs)
    ProfileFactory(user=user)
    RoleAssignmentFactory(user=user, role=ROLE_CANDIDATE)
    OnboardingApplicationFactory(
        user=user,
        track=ROLE_CANDIDATE,
        status=status,
        payload=complete_payload() if complete else {'fullName': 'Test User'},
    )
    return user


def make_mentor(skills=('Python', 'Django', 'SQL'), status=OnboardingApplication.STATUS_APPROVED, **user_kwargs):
    """A user with the mentor role and a complete mentor application publishing ``skills``."""
    user = UserFactory(**user_kwargs)
    ProfileFactory(user=user)
    RoleAssignmentFactory(user=user, role=ROLE_MENTOR)
    OnboardingApplicationFactory(
        user=user,
        track=ROLE_MENTOR,
        status=status,
        payload=complete_payload(skills=list(skills)),
    )
    return user


def make_admin(super_admin=False, **user_kwargs):
    user = UserFactory(**user_kwargs)
    ProfileFactory(user=user)
    RoleAssignmentFactory(user=user, role=ROLE_SUPER_ADMIN if super_admin else ROLE_ADMIN)
    return user


def make_accepted_request(candidate=None, mentor=None, skills=('Python',)):
    candidate = candidate or make_candidate()
    mentor = mentor or make_mentor()
    return MentorshipRequestFactory(
        candidate=candidate,
        mentor=mentor,
        selected_skills=list(skills),
        status=MentorshipRequest.STATUS_ACCEPTED,
    )


def make_roadmap(progresses=(0, 0, 0), hours=(10, 10, 10), mentorship_request=None):
    """Roadmap with one milestone per entry of ``progresses``."""
    mentorship_request = mentorship_request or make_accepted_request()
    roadmap = LearningRoadmapFactory(mentorship_request=mentorship_request)
    for position, (progress, estimate) in enumerate(zip(progresses, hours), start=1):
        MilestoneFactory(roadmap=roadmap, order=position, progress=progress, estimated_hours=estimate)
    return roadmap
