"""
Experiment tracking utilities using MLflow.
"""

import mlflow
import logging
from contextlib import nullcontext
from typing import Dict, Any, Optional, Union

logger = logging.getLogger(__name__)


class ExperimentTracker:
    """MLflow experiment tracking wrapper."""

    def __init__(self, config: Dict[str, Any]):
        """Initialize experiment tracker from an ``mlflow`` config block."""
        self.config = config
        self.tracking_uri = config.get('tracking_uri', 'file:./mlruns')
        self.experiment_name = config.get('experiment_name', 'clinical_eda')

        mlflow.set_tracking_uri(self.tracking_uri)

        self.experiment_id = self._resolve_experiment()
        mlflow.set_experiment(experiment_id=self.experiment_id)
        logger.info(f"Tracking to experiment '{self.experiment_name}' ({self.experiment_id}) at {self.tracking_uri}")

    def _resolve_experiment(self) -> str:
        """Id of the named experiment; created on first use, restored if it was deleted."""
        experiment = mlflow.get_experiment_by_name(self.experiment_name)
        if experiment is None:
            return mlflow.create_experiment(
                self.experiment_name, artifact_location=self.config.get('artifact_location'))
        if experiment.lifecycle_stage == "deleted":
            logger.info(f"Restoring deleted experiment '{self.experiment_name}'")
            mlflow.MlflowClient().restore_experiment(experiment.experiment_id)
        return experiment.experiment_id

    def start_run(self, run_name: Optional[str] = None):
        """Start MLflow run."""
        return mlflow.start_run(run_name=run_name)

    def log_params(self, params: Dict[str, Any], prefix: str = ""):
        """Log parameters to MLflow."""
        flat_params = self._flatten_dict(params, prefix)
        for key, value in flat_params.items():
            try:
                mlflow.log_param(key, value)
            except Exception as e:
                logger.warning(f"Failed to log param {key}: {e}")

    def log_metrics(self, metrics: Dict[str, float], step: Optional[int] = None):
        """Log numeric metrics to MLflow."""
        for key, value in metrics.items():
            if not isinstance(value, (int, float)):
                continue
            try:
                mlflow.log_metric(key, value, step=step)
            except Exception as e:
                logger.warning(f"Failed to log metric {key}: {e}")

    def log_artifacts(self, artifact_path: str):
        """Log artifacts to MLflow."""
        try:
            mlflow.log_artifacts(artifact_path)
        except Exception as e:
            logger.warning(f"Failed to log artifacts: {e}")

    def log_dict(self, dictionary: Union[Dict[str, Any], Any], artifact_file: str):
        """Log dictionary as YAML artifact to MLflow."""
        try:
            mlflow.log_dict(dictionary, artifact_file)
            logger.info(f"Dictionary logged as {artifact_file}")
        except Exception as e:
            logger.warning(f"Failed to log dictionary to MLflow: {e}")

    def log_model(self, model, model_name: str, input_example=None):
        """Log a fitted sklearn/imblearn pipeline."""
        try:
            kwargs = {'input_example': input_example} if input_example is not None else {}
            mlflow.sklearn.log_model(model, model_name, **kwargs)
        except Exception as e:
            logger.warning(f"Failed to log model {model_name}: {e}")

    def _flatten_dict(self, d: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
        """Flatten nested dictionary for parameter logging."""
        items = []

        for key, value in d.items():
            new_key = f"{prefix}.{key}" if prefix else key

            if isinstance(value, dict):
                items.extend(self._flatten_dict(value, new_key).items())
            else:
                # Convert to string for MLflow
                items.append((new_key, str(value)))

        return dict(items)


def setup_experiment_tracking(config: Dict[str, Any]) -> Optional[ExperimentTracker]:
    """Build a tracker from the full config, or None when tracking is disabled."""
    mlflow_config = config.get('mlflow', {})
    if not mlflow_config.get('enabled', False):
        logger.info("Experiment tracking disabled")
        return None
    return ExperimentTracker(mlflow_config)


def tracked_run(tracker: Optional[ExperimentTracker], run_name: Optional[str] = None):
    """Context manager for a run, or a no-op when tracking is disabled."""
    if tracker is None:
        return nullcontext()
    return tracker.start_run(run_name)
