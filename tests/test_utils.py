"""
Test suite for utilities and experiment tracking.
"""

import pytest
import pandas as pd
import numpy as np
from unittest.mock import MagicMock, patch

from sklearn.svm import LinearSVC
from sklearn.tree import DecisionTreeClassifier

from clinical_eda.utils.experiment_tracking import ExperimentTracker, setup_experiment_tracking, tracked_run
from clinical_eda.utils.model_utils import ModelComparator, ModelEvaluator, get_decision_scores

MLFLOW_CONFIG = {
    'tracking_uri': 'file:./test_mlruns',
    'experiment_name': 'test_experiment',
}


@pytest.fixture
def mock_mlflow():
    with patch('clinical_eda.utils.experiment_tracking.mlflow') as mocked:
        mocked.get_experiment_by_name.return_value = None
        mocked.create_experiment.return_value = "exp_1"
        yield mocked


class TestExperimentTracker:
    """Test experiment tracking functionality."""

    def test_init(self, mock_mlflow):
        tracker = ExperimentTracker(MLFLOW_CONFIG)

        assert tracker.tracking_uri == 'file:./test_mlruns'
        assert tracker.experiment_name == 'test_experiment'
        mock_mlflow.set_tracking_uri.assert_called_once_with('file:./test_mlruns')
        mock_mlflow.set_experiment.assert_called_once_with(experiment_id="exp_1")

    def test_init_existing_experiment(self, mock_mlflow):
        mock_mlflow.get_experiment_by_name.return_value = MagicMock(
            experiment_id="exp_9", lifecycle_stage="active")

        ExperimentTracker(MLFLOW_CONFIG)

        mock_mlflow.create_experiment.assert_not_called()
        mock_mlflow.MlflowClient.return_value.restore_experiment.assert_not_called()
        mock_mlflow.set_experiment.assert_called_once_with(experiment_id="exp_9")

    def test_init_restores_deleted_experiment(self, mock_mlflow):
        mock_mlflow.get_experiment_by_name.return_value = MagicMock(
            experiment_id="exp_3", lifecycle_stage="deleted")

        tracker = ExperimentTracker(MLFLOW_CONFIG)

        mock_mlflow.MlflowClient.return_value.restore_experiment.assert_called_once_with("exp_3")
        mock_mlflow.create_experiment.assert_not_called()
        assert tracker.experiment_id == "exp_3"

    def test_start_run(self, mock_mlflow):
        tracker = ExperimentTracker(MLFLOW_CONFIG)
        tracker.start_run("test_run")

        mock_mlflow.start_run.assert_called_once_with(run_name="test_run")

    def test_log_params(self, mock_mlflow):
        tracker = ExperimentTracker(MLFLOW_CONFIG)
        tracker.log_params({'split': {'test_size': 0.2}, 'models': ['random_forest']})

        assert mock_mlflow.log_param.call_count == 2
        mock_mlflow.log_param.assert_any_call('split.test_size', '0.2')
        mock_mlflow.log_param.assert_any_call('models', "['random_forest']")

    def test_log_metrics_skips_non_numeric(self, mock_mlflow):
        tracker = ExperimentTracker(MLFLOW_CONFIG)
        tracker.log_metrics({'accuracy': 0.95, 'f1_score': 0.92, 'model': 'random_forest'})

        assert mock_mlflow.log_metric.call_count == 2
        mock_mlflow.log_metric.assert_any_call('accuracy', 0.95, step=None)
        mock_mlflow.log_metric.assert_any_call('f1_score', 0.92, step=None)

    def test_logging_failures_are_not_fatal(self, mock_mlflow):
        mock_mlflow.log_metric.side_effect = RuntimeError("tracking server down")
        tracker = ExperimentTracker(MLFLOW_CONFIG)

        tracker.log_metrics({'accuracy': 0.9})

    def test_flatten_dict(self, mock_mlflow):
        tracker = ExperimentTracker(MLFLOW_CONFIG)
        flattened = tracker._flatten_dict({'grid_search': {'linear_svm': {'C': [0.1, 1.0]}}})

        assert flattened == {'grid_search.linear_svm.C': '[0.1, 1.0]'}


def test_setup_experiment_tracking(mock_mlflow):
    """Tracking is opt-in through mlflow.enabled."""
    assert setup_experiment_tracking({}) is None
    assert setup_experiment_tracking({'mlflow': {'enabled': False}}) is None

    tracker = setup_experiment_tracking({'mlflow': dict(MLFLOW_CONFIG, enabled=True)})
    assert isinstance(tracker, ExperimentTracker)


def test_tracked_run_without_tracker():
    with tracked_run(None, "noop") as run:
        assert run is None


class TestModelEvaluator:
    """Test metric computation."""

    def test_calculate_metrics(self):
        y_true = np.array([1, 1, 1, 0, 0, 0, 1, 0])
        y_pred = np.array([1, 1, 0, 0, 0, 1, 1, 0])
        y_score = np.array([0.9, 0.8, 0.4, 0.2, 0.1, 0.6, 0.7, 0.3])

        metrics = ModelEvaluator().calculate_metrics(y_true, y_pred, y_score)

        assert metrics['accuracy'] == pytest.approx(0.75)
        assert metrics['precision'] == pytest.approx(0.75)
        assert metrics['recall'] == pytest.approx(0.75)
        assert metrics['f1_score'] == pytest.approx(0.75)
        assert (metrics['true_positives'], metrics['false_positives']) == (3, 1)
        assert (metrics['true_negatives'], metrics['false_negatives']) == (3, 1)
        assert metrics['specificity'] == pytest.approx(0.75)
        assert 0.5 < metrics['roc_auc'] <= 1.0

    def test_no_positive_predictions(self):
        metrics = ModelEvaluator().calculate_metrics(np.array([1, 0, 1]), np.array([0, 0, 0]))

        assert metrics['precision'] == 0.0
        assert metrics['f1_score'] == 0.0
        assert 'roc_auc' not in metrics

    def test_confusion_frame(self):
        frame = ModelEvaluator().confusion_frame(np.array([1, 0, 1, 0]), np.array([1, 1, 1, 0]),
                                                 labels=['Negative', 'Positive'])
        assert frame.loc['actual Negative', 'predicted Positive'] == 1
        assert frame.loc['actual Positive', 'predicted Positive'] == 2

    def test_slice_analysis(self):
        y_true = np.array([1, 0] * 15)
        y_pred = np.array([1, 0] * 15)
        slices = np.array(['Male'] * 20 + ['Female'] * 10)

        result = ModelEvaluator().slice_analysis(y_true, y_pred, slices, min_size=15)

        assert list(result) == ['Male']
        assert result['Male']['sample_size'] == 20
        assert result['Male']['accuracy'] == 1.0

    def test_decision_scores(self):
        X = pd.DataFrame({'a': [0.0, 1.0, 2.0, 3.0], 'b': [1.0, 0.0, 1.0, 0.0]})
        y = np.array([0, 0, 1, 1])

        tree_scores = get_decision_scores(DecisionTreeClassifier(random_state=0).fit(X, y), X)
        svm_scores = get_decision_scores(LinearSVC(random_state=0).fit(X, y), X)

        assert tree_scores.shape == (4,)
        assert svm_scores.shape == (4,)
        assert get_decision_scores(object(), X) is None


class TestModelComparator:
    """Test model ranking."""

    def test_best_model(self):
        comparator = ModelComparator()
        comparator.add_metrics('random_forest', {'f1_score': 0.91, 'accuracy': 0.90})
        comparator.add_metrics('decision_tree', {'f1_score': 0.95, 'accuracy': 0.85})
        comparator.add_model('linear_svm', np.array([1, 0, 1, 0]), np.array([1, 0, 0, 0]))

        comparison = comparator.compare_models()

        assert comparison.index[0] == 'decision_tree'
        assert comparator.get_best_model('f1_score') == 'decision_tree'
        assert comparator.get_best_model('accuracy') == 'random_forest'

    def test_empty(self):
        comparator = ModelComparator()
        assert comparator.compare_models().empty
        assert comparator.get_best_model() is None


if __name__ == "__main__":
    pytest.main([__file__])
