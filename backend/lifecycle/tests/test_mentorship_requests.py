from unittest.mock import MagicMock, patch

import pytest
from django.db import transaction

from lifecycle import mentorship_requests
from lifecycle.exceptions import AuthorizationDenied, DuplicateRequest, NotFound, ValidationFailed
from lifecycle.models import MentorshipRequest, OnboardingApplication
from lifecycle.tests.fixtures import (
    MentorshipRequestFactory,
    UserFactory,
    make_candidate,
    make_mentor,
)


@pytest.mark.django_db
class TestCreateRequest:
    def setup_method(self):
        self.candidate = make_candidate()
        self.mentor = make_mentor(skills=['Python', 'Django', 'SQL'])

    def test_create_pending_request_and_email_mentor(self, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            request = mentorship_requests.create(
                self.candidate, self.mentor, message='Hi!', selected_skills=['Python', 'SQL'],
            )
        assert request.status == MentorshipRequest.STATUS_PENDING
        assert request.selected_skills == ['Python', 'SQL']
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [self.mentor.email]
        assert 'Python, SQL' in mailoutbox[0].body

    def test_email_waits_for_commit(self, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            mentorship_requests.create(self.candidate, self.mentor, selected_skills=['Python'])
        assert len(callbacks) == 1
        assert mailoutbox == []

        callbacks[0]()
        assert len(mailoutbox) == 1

    def test_rolled_back_request_sends_nothing(self, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with transaction.atomic():
                    mentorship_requests.create(self.candidate, self.mentor, selected_skills=['Python'])
                    raise RuntimeError('abort')
        assert callbacks == []
        assert mailoutbox == []
        assert not MentorshipRequest.objects.exists()

    def test_empty_skills_rejected(self):
        with pytest.raises(ValidationFailed):
            mentorship_requests.create(self.candidate, self.mentor, selected_skills=[])
        assert not MentorshipRequest.objects.exists()

    def test_skills_must_be_offered_by_mentor(self):
        with pytest.raises(ValidationFailed):
            mentorship_requests.create(self.candidate, self.mentor, selected_skills=['Rust'])

    def test_duplicate_pending_request(self):
        mentorship_requests.create(self.candidate, self.mentor, selected_skills=['Python'])
        with pytest.raises(DuplicateRequest):
            mentorship_requests.create(self.candidate, self.mentor, selected_skills=['SQL'])

    @pytest.mark.parametrize('status', [
        MentorshipRequest.STATUS_ACCEPTED,
        MentorshipRequest.STATUS_REJECTED,
        MentorshipRequest.STATUS_CANCELLED,
    ])
    def test_duplicate_in_any_state(self, status):
        MentorshipRequestFactory(candidate=self.candidate, mentor=self.mentor, status=status)
        with pytest.raises(DuplicateRequest):
            mentorship_requests.create(self.candidate, self.mentor, selected_skills=['Python'])

    def test_requires_candidate_role(self):
        with pytest.raises(AuthorizationDenied):
            mentorship_requests.create(UserFactory(), self.mentor, selected_skills=['Python'])

    def test_unapproved_mentor_not_found(self):
        pending_mentor = make_mentor(status=OnboardingApplication.STATUS_PENDING)
        with pytest.raises(NotFound):
            mentorship_requests.create(self.candidate, pending_mentor, selected_skills=['Python'])

    def test_missing_mentor_not_found(self):
        with pytest.raises(NotFound):
            mentorship_requests.create(self.candidate, None, selected_skills=['Python'])

    def test_cannot_request_yourself(self):
        with pytest.raises(ValidationFailed):
            mentorship_requests.create(self.candidate, self.candidate, selected_skills=['Python'])

    def test_notification_failure_does_not_block(self, django_capture_on_commit_callbacks):
        failing_task = MagicMock()
        failing_task.delay.side_effect = RuntimeError('broker down')
        with patch('lifecycle.mentorship_requests.send_mentorship_request_email', failing_task), \
                django_capture_on_commit_callbacks(execute=True):
            request = mentorship_requests.create(self.candidate, self.mentor, selected_skills=['Python'])
        assert MentorshipRequest.objects.filter(id=request.id).exists()
        failing_task.delay.assert_called_once_with(str(request.id))


@pytest.mark.django_db
class TestDecideAndCancel:
    def setup_method(self):
        self.candidate = make_candidate()
        self.mentor = make_mentor()
        self.request = MentorshipRequestFactory(candidate=self.candidate, mentor=self.mentor)

    def test_mentor_accepts_and_candidate_is_emailed(self, mailoutbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            decided = mentorship_requests.decide(
                self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.mentor, notes='Welcome',
            )
        assert decided.status == MentorshipRequest.STATUS_ACCEPTED
        assert decided.decided_at is not None
        assert decided.notes == 'Welcome'
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [self.candidate.email]
        assert 'accepted' in mailoutbox[0].subject

    def test_only_addressed_mentor_can_decide(self):
        with pytest.raises(AuthorizationDenied):
            mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, make_mentor())
        with pytest.raises(AuthorizationDenied):
            mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.candidate)

    def test_same_decision_twice_is_noop(self):
        first = mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.mentor)
        second = mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.mentor)
        assert second.decided_at == first.decided_at

    def test_contradicting_decision_refused(self):
        mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.mentor)
        with pytest.raises(ValidationFailed):
            mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_REJECTED, self.mentor)
        self.request.refresh_from_db()
        assert self.request.status == MentorshipRequest.STATUS_ACCEPTED

    def test_invalid_decision(self):
        with pytest.raises(ValidationFailed):
            mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_CANCELLED, self.mentor)

    def test_candidate_cancels_pending(self):
        cancelled = mentorship_requests.cancel(self.request.id, self.candidate)
        assert cancelled.status == MentorshipRequest.STATUS_CANCELLED
        with pytest.raises(ValidationFailed):
            mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.mentor)

    def test_cannot_cancel_decided_request(self):
        mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.mentor)
        with pytest.raises(ValidationFailed):
            mentorship_requests.cancel(self.request.id, self.candidate)

    def test_only_requester_can_cancel(self):
        with pytest.raises(AuthorizationDenied):
            mentorship_requests.cancel(self.request.id, self.mentor)

    def test_accepted_request_for(self):
        assert mentorship_requests.accepted_request_for(self.mentor, self.candidate) is None
        mentorship_requests.decide(self.request.id, MentorshipRequest.STATUS_ACCEPTED, self.mentor)
        found = mentorship_requests.accepted_request_for(self.mentor, self.candidate, request_id=self.request.id)
        assert found.id == self.request.id

    def test_listings(self):
        other = MentorshipRequestFactory(candidate=make_candidate(), mentor=self.mentor, status=MentorshipRequest.STATUS_REJECTED)
        assert {r.id for r in mentorship_requests.incoming_for(self.mentor)} == {self.request.id, other.id}
        assert [r.id for r in mentorship_requests.incoming_for(self.mentor, status='pending')] == [self.request.id]
        assert [r.id for r in mentorship_requests.outgoing_for(self.candidate)] == [self.request.id]


@pytest.mark.django_db
class TestListMentors:
    def test_only_approved_mentors_with_skill_filter(self):
        python_mentor = make_mentor(skills=['Python'])
        react_mentor = make_mentor(skills=['React'])
        make_mentor(skills=['Python'], status=OnboardingApplication.STATUS_PENDING)

        everyone = mentorship_requests.list_mentors()
        assert {entry['mentor'].pk for entry in everyone} == {python_mentor.pk, react_mentor.pk}

        filtered = mentorship_requests.list_mentors(skill='python')
        assert [entry['mentor'].pk for entry in filtered] == [python_mentor.pk]
        assert filtered[0]['skills'] == ['Python']
