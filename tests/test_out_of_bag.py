"""
Out-of-bag error tracking, smoothing and ensemble rollback.
"""

import numpy as np
import pytest

from learncore.core.iterative import AnytimeIterativeAlgorithm
from learncore.ensemble.bagging import BaggingCategorizerLearner
from learncore.ensemble.ivoting import IVotingCategorizerLearner
from learncore.ensemble.out_of_bag import OutOfBagErrorStoppingCriteria, OutOfBagLearner
from learncore.ensemble.voting import WeightedVotingCategorizerEnsemble


class ScriptedEnsembleLearner(AnytimeIterativeAlgorithm):
    """Adds one scripted (member, weight) per step; a None entry adds nothing."""

    def __init__(self, data, script, in_bag=None):
        super().__init__(len(script))
        self.data = data
        self.script = script
        self.in_bag = np.zeros(len(data), dtype=int) if in_bag is None else np.asarray(in_bag)
        self.ensemble = WeightedVotingCategorizerEnsemble()

    @property
    def dataset_size(self):
        return len(self.data)

    @property
    def data_in_bag_indicator(self):
        return self.in_bag

    def example(self, index):
        return self.data[index]

    def current_ensemble_snapshot(self):
        return self.ensemble.members

    def truncate_ensemble_to(self, index):
        self.ensemble.truncate(index + 1)

    def initialize_algorithm(self):
        self.ensemble = WeightedVotingCategorizerEnsemble()
        self.result = self.ensemble
        return True

    def step(self):
        entry = self.script[self.iteration - 1]
        # None: the base learner produced no member this step
        if entry is not None:
            self.ensemble.add(*entry)
        return True

    def cleanup_algorithm(self):
        pass


DATA = [(x, "a") for x in range(4)]


def test_update_error_rate_rolls_back_to_lowest_raw_rate():
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=5)
    criteria.reset(10)

    signals = [criteria.update_error_rate(rate) for rate in [0.5, 0.4, 0.3, 0.35, 0.4]]

    assert signals == [None, None, None, None, 2]
    assert criteria.smoothed_error_rates[3] == pytest.approx(0.3875)
    assert criteria.smoothed_error_rates[4] == pytest.approx(0.39)


def test_equal_raw_rates_roll_back_to_the_older_member():
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=5)
    criteria.reset(10)
    signals = [criteria.update_error_rate(rate) for rate in [0.5, 0.3, 0.3, 0.4]]
    assert signals == [None, None, None, 1]


def test_only_the_smoothing_window_is_scanned():
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=2)
    criteria.reset(10)
    signals = [criteria.update_error_rate(rate) for rate in [0.5, 0.2, 0.3, 0.4]]
    # 0.2 (member 1) has left the window when the smoothed rate rises
    assert signals == [None, None, None, 2]


def test_constant_rate_stops_on_second_step():
    criteria = OutOfBagErrorStoppingCriteria()
    criteria.reset(10)
    assert criteria.update_error_rate(0.2) is None
    assert criteria.update_error_rate(0.2) == 0


def test_listener_stops_learner_and_truncates_ensemble():
    script = [
        (lambda x: "a" if x < 1 else "b", 1.0),  # 3 of 4 wrong
        (lambda x: "a", 2.0),                    # all right
        (lambda x: "b", 5.0),                    # all wrong again
        (lambda x: "a", 1.0),
    ]
    learner = ScriptedEnsembleLearner(DATA, script)
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=25)
    learner.add_listener(criteria)

    ensemble = learner.run()

    assert criteria.raw_error_rates == [0.75, 0.0, 1.0]
    assert criteria.best_index == 1
    assert len(ensemble) == 2
    assert learner.stopped_by == "stopped"
    assert learner.iteration == 3
    assert ensemble.evaluate(3) == "a"


def test_steps_without_a_new_member_are_not_recorded():
    script = [
        (lambda x: "a" if x < 1 else "b", 1.0),
        None,
        (lambda x: "a", 2.0),
        None,
        (lambda x: "b", 5.0),
        (lambda x: "a", 1.0),
    ]
    learner = ScriptedEnsembleLearner(DATA, script)
    criteria = OutOfBagErrorStoppingCriteria(smoothing_window_size=25)
    learner.add_listener(criteria)

    ensemble = learner.run()

    assert criteria.raw_error_rates == [0.75, 0.0, 1.0]
    assert criteria.best_index == 1
    assert len(ensemble) == 2
    assert learner.iteration == 5


def test_in_bag_examples_get_no_out_of_bag_vote():
    learner = ScriptedEnsembleLearner(DATA, [(lambda x: "a", 1.0)], in_bag=[1, 1, 0, 0])
    criteria = OutOfBagErrorStoppingCriteria()
    learner.add_listener(criteria)
    learner.run()
    assert criteria.raw_error_rates == [0.5]
    assert criteria.out_of_bag_error_count == 2


def test_learners_implement_the_protocol():
    assert isinstance(BaggingCategorizerLearner(), OutOfBagLearner)
    assert isinstance(IVotingCategorizerLearner(), OutOfBagLearner)
    assert isinstance(ScriptedEnsembleLearner(DATA, [(lambda x: "a", 1.0)]), OutOfBagLearner)


def test_invalid_window():
    with pytest.raises(ValueError):
        OutOfBagErrorStoppingCriteria(smoothing_window_size=0)
