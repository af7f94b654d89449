import pytest

from lifecycle import progress
from lifecycle.exceptions import DuplicateRequest, NotFound, ValidationFailed
from lifecycle.models import LearningProgress
from lifecycle.tests.fixtures import (
    LearningProgressFactory,
    UserFactory,
    make_accepted_request,
    make_candidate,
    make_mentor,
    make_roadmap,
)


class TestAggregation:
    @pytest.mark.parametrize('value, expected', [(49.5, 50), (0.5, 1), (2.5, 3), (50.49, 50), (0, 0)])
    def test_round_half_up(self, value, expected):
        assert progress.round_half_up(value) == expected

    def test_roadmap_progress_is_mean(self):
        assert progress.roadmap_progress([{'progress': 0}, {'progress': 50}, {'progress': 100}]) == 50

    def test_roadmap_progress_rounds_halves_up(self):
        assert progress.roadmap_progress([{'progress': 50}, {'progress': 51}]) == 51
        assert progress.roadmap_progress([{'progress': 33}, {'progress': 33}, {'progress': 34}]) == 33

    def test_no_milestones(self):
        assert progress.roadmap_progress([]) == 0
        assert progress.completed_hours([]) == 0
        assert progress.total_hours([]) == 0

    def test_hours(self):
        milestones = [
            {'progress': 0, 'estimated_hours': 10},
            {'progress': 50, 'estimated_hours': 10},
            {'progress': 100, 'estimated_hours': 10},
        ]
        assert progress.completed_hours(milestones) == 15
        assert progress.total_hours(milestones) == 30
        assert progress.completed_count(milestones) == 1

    def test_legacy_hours_key(self):
        assert progress.total_hours([{'progress': 100, 'estimatedHours': 8}]) == 8

    @pytest.mark.parametrize('value, expected', [(150, 100), (-10, 0), ('12.5', 13), (1e30, 100), (-1e30, 0), ('1e999', 100)])
    def test_clamp(self, value, expected):
        assert progress.clamp_progress(value) == expected

    @pytest.mark.parametrize('value', [None, 'abc', True, float('nan')])
    def test_clamp_rejects_non_numbers(self, value):
        with pytest.raises(ValidationFailed):
            progress.clamp_progress(value)


@pytest.mark.django_db
class TestSummaries:
    def test_summarize_roadmap_from_rows(self):
        roadmap = make_roadmap(progresses=(0, 50, 100), hours=(10, 10, 10))
        summary = progress.summarize_roadmap(roadmap)
        assert summary['progress'] == 50
        assert summary['completed_hours'] == 15
        assert summary['total_hours'] == 30
        assert summary['completed_milestones'] == 1

    def test_candidate_summary(self):
        candidate = make_candidate()
        make_roadmap(progresses=(100, 100), hours=(5, 5), mentorship_request=make_accepted_request(candidate=candidate))
        make_roadmap(progresses=(0, 50), hours=(10, 10), mentorship_request=make_accepted_request(candidate=candidate))

        summary = progress.candidate_summary(candidate)

        assert summary['roadmap_count'] == 2
        assert summary['total_milestones'] == 4
        assert summary['completed_milestones'] == 2
        assert summary['total_hours'] == 30
        assert summary['completed_hours'] == 15
        # mean of 100 and 25
        assert summary['overall_progress'] == 63

    def test_candidate_without_roadmaps(self):
        summary = progress.candidate_summary(make_candidate())
        assert summary['roadmap_count'] == 0
        assert summary['overall_progress'] == 0

    def test_mentor_overview_per_candidate(self):
        mentor = make_mentor()
        first = make_roadmap(progresses=(100,), hours=(1,), mentorship_request=make_accepted_request(mentor=mentor))
        make_roadmap(progresses=(0, 20), hours=(1, 1), mentorship_request=make_accepted_request(mentor=mentor))

        overview = {entry['candidate_id']: entry for entry in progress.mentor_overview(mentor)}

        assert len(overview) == 2
        assert overview[first.candidate_id]['average_progress'] == 100
        assert overview[first.candidate_id]['completed_milestones'] == 1
        other = next(entry for cid, entry in overview.items() if cid != first.candidate_id)
        assert other['average_progress'] == 10


@pytest.mark.django_db
class TestLearningProgress:
    def setup_method(self):
        self.user = UserFactory()

    def test_upsert_and_clamp(self):
        progress.update_learning_progress(self.user, 'SQL', 40)
        record = progress.update_learning_progress(self.user, 'SQL', 140)
        assert record.progress_percentage == 100
        assert LearningProgress.objects.filter(user=self.user, skill_name='SQL').count() == 1

    def test_add_skill_twice_is_duplicate(self):
        progress.add_skill(self.user, 'Docker')
        with pytest.raises(DuplicateRequest):
            progress.add_skill(self.user, 'Docker', 10)

    def test_remove_skill(self):
        LearningProgressFactory(user=self.user, skill_name='Go')
        progress.remove_skill(self.user, 'Go')
        assert not LearningProgress.objects.filter(user=self.user).exists()
        with pytest.raises(NotFound):
            progress.remove_skill(self.user, 'Go')

    def test_listed_most_recent_first(self):
        progress.update_learning_progress(self.user, 'Old', 10)
        progress.update_learning_progress(self.user, 'New', 10)
        progress.update_learning_progress(self.user, 'Old', 20)
        assert [r.skill_name for r in progress.learning_progress_for(self.user)] == ['Old', 'New']

    def test_blank_skill_name(self):
        with pytest.raises(ValidationFailed):
            progress.update_learning_progress(self.user, '  ', 10)
