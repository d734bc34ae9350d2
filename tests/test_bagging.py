"""
Bagging and i-voting ensemble learners.
"""

import numpy as np
import pytest

from learncore.ensemble.bagging import BaggingCategorizerLearner
from learncore.ensemble.ivoting import IVotingCategorizerLearner
from learncore.ensemble.out_of_bag import OutOfBagErrorStoppingCriteria
from learncore.ensemble.stump import DecisionStumpLearner


def accuracy(ensemble, data):
    return np.mean([ensemble.evaluate(x) == label for x, label in data])


class AbstainingLearner:
    def learn(self, data):
        return lambda x: None


# ---------------------------------------------------------------------------
# Bagging
# ---------------------------------------------------------------------------

def test_bagging_builds_one_member_per_step(threshold_data):
    learner = BaggingCategorizerLearner(max_iterations=10, random_state=7)
    ensemble = learner.learn(threshold_data)

    assert len(ensemble) == 10
    assert all(member.weight == 1.0 for member in ensemble.members)
    assert set(ensemble.categories) == {"low", "high"}
    assert accuracy(ensemble, threshold_data) >= 0.8
    assert learner.stopped_by == "max_iterations"


def test_bagging_sample_size(threshold_data):
    learner = BaggingCategorizerLearner(max_iterations=3, percent_to_sample=0.5, random_state=1)
    learner.learn(threshold_data)

    assert learner.sample_count == 10
    assert learner.data_in_bag_indicator.sum() == 10

    tiny = BaggingCategorizerLearner(max_iterations=1, percent_to_sample=0.001, random_state=1)
    tiny.learn(threshold_data)
    assert tiny.sample_count == 1


def test_bag_indicator_is_read_only(threshold_data):
    learner = BaggingCategorizerLearner(max_iterations=1, random_state=1)
    learner.learn(threshold_data)
    with pytest.raises(ValueError):
        learner.data_in_bag_indicator[0] = 5


def test_bagging_is_reproducible_with_a_seed(threshold_data):
    first = BaggingCategorizerLearner(max_iterations=5, random_state=3)
    second = BaggingCategorizerLearner(max_iterations=5, random_state=3)

    members_first = [m.member for m in first.learn(threshold_data).members]
    members_second = [m.member for m in second.learn(threshold_data).members]
    assert members_first == members_second

    again = [m.member for m in first.learn(threshold_data).members]
    assert again == members_first


def test_bagging_on_empty_data():
    learner = BaggingCategorizerLearner()
    assert learner.learn([]) is None
    assert learner.stopped_by == "initialize"


def test_bagging_with_out_of_bag_stopping(threshold_data):
    learner = BaggingCategorizerLearner(max_iterations=200, random_state=11)
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=5)
    learner.add_listener(criteria)
    ensemble = learner.learn(threshold_data)

    assert len(criteria.raw_error_rates) == learner.iteration
    if criteria.best_index is not None:
        assert learner.stopped_by == "stopped"
        assert len(ensemble) == criteria.best_index + 1
    assert accuracy(ensemble, threshold_data) >= 0.8


class EveryOtherBagLearner:
    """Stump learner that declines every second bag."""

    def __init__(self):
        self.calls = 0
        self.members = 0
        self.stumps = DecisionStumpLearner()

    def learn(self, data):
        self.calls += 1
        if self.calls % 2 == 0:
            return None
        self.members += 1
        return self.stumps.learn(data)


def test_out_of_bag_stopping_with_declined_bags(threshold_data):
    base = EveryOtherBagLearner()
    learner = BaggingCategorizerLearner(base, max_iterations=40, random_state=3)
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=3)
    learner.add_listener(criteria)
    ensemble = learner.learn(threshold_data)

    # One error rate per member actually added
    assert len(criteria.raw_error_rates) == base.members
    assert learner.iteration == base.calls
    if criteria.best_index is not None:
        assert criteria.best_index < base.members
        assert len(ensemble) == criteria.best_index + 1
    else:
        assert len(ensemble) == base.members


def test_bagging_invalid_percent():
    with pytest.raises(ValueError):
        BaggingCategorizerLearner(percent_to_sample=0.0)


# ---------------------------------------------------------------------------
# i-voting
# ---------------------------------------------------------------------------

def test_ivoting_sample_split(threshold_data):
    learner = IVotingCategorizerLearner(max_iterations=2, random_state=0)
    learner.learn(threshold_data)

    # 10% of 20 examples, half of them from the misclassified pool
    assert learner.sample_size == 2
    assert learner.num_incorrect_to_sample == 1
    assert learner.num_correct_to_sample == 1
    assert learner.data_in_bag_indicator.sum() == 2


def test_ivoting_runs_all_iterations(threshold_data):
    learner = IVotingCategorizerLearner(max_iterations=30, percent_to_sample=0.5, random_state=1)
    ensemble = learner.learn(threshold_data)

    assert len(ensemble) == 30
    assert learner.stopped_by == "max_iterations"
    assert learner.current_ensemble_correct.shape == (20,)
    assert accuracy(ensemble, threshold_data) >= 0.75


def test_ivoting_full_vote(threshold_data):
    learner = IVotingCategorizerLearner(
        max_iterations=20, percent_to_sample=0.5, vote_out_of_bag_only=False, random_state=2
    )
    ensemble = learner.learn(threshold_data)
    assert len(ensemble) == 20


def test_ivoting_is_reproducible_with_a_seed(threshold_data):
    runs = [
        [m.member for m in IVotingCategorizerLearner(max_iterations=5, percent_to_sample=0.5,
                                                     random_state=4).learn(threshold_data).members]
        for _ in range(2)
    ]
    assert runs[0] == runs[1]


def test_ivoting_abstaining_members_count_as_correct(threshold_data):
    learner = IVotingCategorizerLearner(learner=AbstainingLearner(), max_iterations=3)
    learner.learn(threshold_data)
    assert learner.current_ensemble_correct.all()


def test_ivoting_with_out_of_bag_stopping(threshold_data):
    learner = IVotingCategorizerLearner(max_iterations=100, percent_to_sample=0.5, random_state=5)
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=5)
    learner.add_listener(criteria)
    ensemble = learner.learn(threshold_data)

    assert len(criteria.raw_error_rates) == learner.iteration
    if criteria.best_index is not None:
        assert len(ensemble) == criteria.best_index + 1


def test_ivoting_on_empty_data():
    assert IVotingCategorizerLearner().learn([]) is None


@pytest.mark.parametrize(
    "kwargs", [{"percent_to_sample": 0.0}, {"proportion_incorrect_in_sample": 1.5}]
)
def test_ivoting_invalid_configuration(kwargs):
    with pytest.raises(ValueError):
        IVotingCategorizerLearner(**kwargs)
