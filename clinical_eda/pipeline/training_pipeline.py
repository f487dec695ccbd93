"""
Main Classification Pipeline
"""

from __future__ import annotations

import warnings
from sklearn.exceptions import ConvergenceWarning
# LinearSVC on small grids routinely stops at max_iter for the weakest C values
warnings.filterwarnings("ignore", category=ConvergenceWarning)

import argparse
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import joblib
import numpy as np
import pandas as pd
import yaml
from tqdm import tqdm

from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.svm import LinearSVC
from sklearn.tree import DecisionTreeClassifier
from imblearn.over_sampling import SMOTE
from imblearn.pipeline import Pipeline as ImbPipeline

from clinical_eda.analysis.descriptive import (
    association_tests,
    categorical_rates_by_label,
    class_balance,
    numeric_summary_by_label,
)
from clinical_eda.config import load_config, redacted_config
from clinical_eda.data_acquisition import load_dataset
from clinical_eda.pipeline.feature_engineering import CategoricalEncoder, create_preprocessing_pipeline
from clinical_eda.pipeline.preprocessing import DataValidator, encode_label, normalize_columns
from clinical_eda.pipeline.splitting import StratifiedSplitter, split_summary
from clinical_eda.reporting import HTMLReport, narrative
from clinical_eda.utils.experiment_tracking import setup_experiment_tracking, tracked_run
from clinical_eda.utils.model_utils import ModelComparator, ModelEvaluator, get_decision_scores
from clinical_eda.visualization import (
    plot_categorical_rates,
    plot_class_balance,
    plot_confusion_matrix,
    plot_feature_importance,
    plot_metric_table,
    plot_model_comparison,
    plot_numeric_by_label,
)

logger = logging.getLogger(__name__)

SUPPORTED_MODELS = ("random_forest", "linear_svm", "decision_tree")

# One sample plus at least one neighbour
MIN_SMOTE_MINORITY = 2


def create_model(name: str, random_state: int = 42, **params):
    """Unfitted classifier for a configured model name."""
    logger.info(f"Creating model: {name}")
    if name == "random_forest":
        return RandomForestClassifier(random_state=random_state, **params)
    if name == "linear_svm":
        params.setdefault("max_iter", 10000)
        return LinearSVC(random_state=random_state, **params)
    if name == "decision_tree":
        return DecisionTreeClassifier(random_state=random_state, **params)
    raise ValueError(f"Unknown model: {name}")


def to_builtin(obj):
    """Convert numpy types to native Python types for YAML serialization."""
    if isinstance(obj, dict):
        return {str(k): to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_builtin(v) for v in obj]
    if hasattr(obj, 'item'):  # numpy scalar
        return obj.item()
    if hasattr(obj, 'tolist'):  # numpy array
        return obj.tolist()
    return obj


@dataclass
class ModelResult:
    """Grid-search outcome and evaluations for one model."""
    name: str
    search: GridSearchCV
    metrics: Dict[str, Dict[str, float]] = field(default_factory=dict)
    confusion: Dict[str, pd.DataFrame] = field(default_factory=dict)

    @property
    def estimator(self) -> ImbPipeline:
        return self.search.best_estimator_

    @property
    def best_params(self) -> Dict[str, Any]:
        return dict(self.search.best_params_)

    @property
    def cv_score(self) -> float:
        return float(self.search.best_score_)


# =====================
# ClassificationPipeline
# =====================
class ClassificationPipeline:
    """EDA, stratified split, SMOTE + grid-searched classifiers, evaluation and report."""

    def __init__(self, config: Dict):
        self.config = config
        data_cfg = config.get("data", {})
        self.label_col = data_cfg.get("label_column", "class")
        self.positive_label = data_cfg.get("positive_label", "Positive")
        self.random_state = config.get("random_seed", 42)

        model_names = config.get("models", list(SUPPORTED_MODELS))
        unknown = [m for m in model_names if m not in SUPPORTED_MODELS]
        if unknown:
            raise ValueError(f"Unknown model(s) in config: {unknown}")
        self.model_names: List[str] = list(model_names)

        self.results: Dict[str, ModelResult] = {}
        self.best_model_name: Optional[str] = None
        self.evaluator = ModelEvaluator()
        self.experiment_tracker = setup_experiment_tracking(config)

    # ---------- Data ----------
    def load_data(self) -> pd.DataFrame:
        df = load_dataset(self.config.get("data", {}).get("source", {}),
                          self.config.get("dataset_service", {}))
        df = normalize_columns(df)
        logger.info(f"Loaded data shape: {df.shape}")
        return df

    def symptom_columns(self, df: pd.DataFrame) -> List[str]:
        """Yes/No indicator columns."""
        return [c for c in df.columns
                if c != self.label_col and set(df[c].dropna().astype(str).unique()) <= {"Yes", "No"}
                and df[c].notnull().any()]

    def validate_data(self, df: pd.DataFrame) -> Dict[str, List[str]]:
        logger.info("Validating data quality...")
        labels = sorted(df[self.label_col].dropna().unique().tolist()) if self.label_col in df.columns else []
        validator = DataValidator()
        validator.setup_symptom_rules(
            symptom_columns=self.symptom_columns(df),
            label_column=self.label_col,
            labels=labels if len(labels) == 2 else [self.positive_label],
        )
        if self.label_col in df.columns and df[self.label_col].nunique() != 2:
            raise ValueError(f"Label column '{self.label_col}' must have exactly two values, "
                             f"found {sorted(map(str, df[self.label_col].dropna().unique()))}")
        violations = validator.check(df)
        if not violations:
            logger.info("Data validation passed")
        return violations

    def prepare_features(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
        if self.label_col not in df.columns:
            raise ValueError(f"Target column '{self.label_col}' not found")
        y = encode_label(df[self.label_col], self.positive_label).rename("target")
        X = df.drop(columns=[self.label_col])
        logger.info(f"Prepared features: {len(X.columns)} columns, positive rate {y.mean():.3f}")
        return X, y

    def describe_data(self, df: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        numeric_cols = [c for c in self.config.get("data", {}).get("numeric_columns", []) if c in df.columns]
        return {
            "class_balance": class_balance(df[self.label_col]),
            "numeric_summary": numeric_summary_by_label(df, self.label_col, numeric_cols or None),
            "symptom_rates": categorical_rates_by_label(df, self.label_col, columns=self.symptom_columns(df)),
            "association_tests": association_tests(df, self.label_col),
        }

    # ---------- Model pipeline ----------
    def build_pipeline(self, model, minority_count: Optional[int] = None) -> ImbPipeline:
        """encoder -> [scaler] -> [SMOTE] -> model; SMOTE only resamples during fit."""
        steps: List[Tuple[str, Any]] = []
        for i, transformer in enumerate(create_preprocessing_pipeline(self.config)):
            steps.append((f"step_{i}_{transformer.__class__.__name__.lower()}", transformer))

        imb_cfg = self.config.get("imbalance", {})
        if imb_cfg.get("method") == "smote":
            sp = imb_cfg.get("smote", {})
            k_neighbors = sp.get("k_neighbors", 5)
            if minority_count is not None:
                # SMOTE needs more minority samples than neighbours
                k_neighbors = max(1, min(k_neighbors, minority_count - 1))
            steps.append((
                "smote",
                SMOTE(
                    sampling_strategy=sp.get("sampling_strategy", "auto"),
                    k_neighbors=k_neighbors,
                    random_state=sp.get("random_state", self.random_state),
                ),
            ))
        steps.append(("model", model))
        return ImbPipeline(steps)

    def grid_search(self, name: str, X_train: pd.DataFrame, y_train: pd.Series) -> GridSearchCV:
        cv_cfg = self.config.get("cross_validation", {})
        n_splits = int(cv_cfg.get("n_splits", 5))
        cv = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=self.random_state)

        # Smallest training fold still has to feed SMOTE
        minority = int(y_train.value_counts().min())
        fold_minority = minority * (n_splits - 1) // n_splits
        if minority < n_splits:
            raise ValueError(f"Training partition has {minority} minority rows; "
                             f"{n_splits}-fold cross-validation needs at least {n_splits}")
        if self.config.get("imbalance", {}).get("method") == "smote" and fold_minority < MIN_SMOTE_MINORITY:
            raise ValueError(f"Training folds hold {fold_minority} minority rows "
                             f"({minority} in the training partition, {n_splits} folds); "
                             f"SMOTE needs at least {MIN_SMOTE_MINORITY}")
        pipe = self.build_pipeline(create_model(name, self.random_state), minority_count=fold_minority)

        grid = {f"model__{k}": v for k, v in self.config.get("grid_search", {}).get(name, {}).items()}
        search = GridSearchCV(
            pipe,
            grid,
            scoring=cv_cfg.get("scoring", "f1"),
            cv=cv,
            refit=True,
            n_jobs=cv_cfg.get("n_jobs", 1),
            error_score="raise",
        )

        start_time = time.time()
        search.fit(X_train, y_train)
        elapsed_time = time.time() - start_time
        logger.info(f"[{name}] best CV {search.scoring}={search.best_score_:.4f} "
                    f"with {search.best_params_} ({len(search.cv_results_['params'])} candidates, "
                    f"{elapsed_time:.2f} seconds)")
        return search

    def train_models(self, X_train: pd.DataFrame, y_train: pd.Series) -> Dict[str, ModelResult]:
        logger.info("Starting model training...")
        for name in tqdm(self.model_names, desc="Grid search"):
            self.results[name] = ModelResult(name=name, search=self.grid_search(name, X_train, y_train))
        return self.results

    # ---------- Evaluation ----------
    def evaluate(self, X: pd.DataFrame, y: pd.Series, partition: str) -> Dict[str, Dict[str, float]]:
        logger.info(f"Evaluating models on {partition} partition...")
        if not self.results:
            raise ValueError("Models not trained yet")

        out = {}
        for name, result in self.results.items():
            y_pred = result.estimator.predict(X)
            y_score = get_decision_scores(result.estimator, X)
            metrics = self.evaluator.calculate_metrics(y.to_numpy(), y_pred, y_score)
            result.metrics[partition] = metrics
            result.confusion[partition] = self.evaluator.confusion_frame(
                y.to_numpy(), y_pred, labels=self._label_names())
            out[name] = metrics
            logger.info(f"[{name}] {partition}: accuracy={metrics['accuracy']:.4f} f1={metrics['f1_score']:.4f}")
        return out

    def comparison(self, partition: str = "validation") -> pd.DataFrame:
        comparator = ModelComparator()
        for name, result in self.results.items():
            if partition in result.metrics:
                comparator.add_metrics(name, result.metrics[partition])
        return comparator.compare_models(sort_by=self.config.get("selection", {}).get("metric", "f1_score"))

    def select_best(self, metric: Optional[str] = None, partition: Optional[str] = None) -> str:
        selection = self.config.get("selection", {})
        metric = metric or selection.get("metric", "f1_score")
        partition = partition or selection.get("partition", "validation")
        if not self.results:
            raise ValueError("Models not trained yet")

        comparator = ModelComparator()
        for name, result in self.results.items():
            if partition not in result.metrics:
                raise ValueError(f"Model '{name}' has not been evaluated on '{partition}'")
            if metric not in result.metrics[partition]:
                raise ValueError(f"Unknown selection metric: {metric}")
            comparator.add_metrics(name, result.metrics[partition])
        self.best_model_name = comparator.get_best_model(metric)
        logger.info(f"Best model by {partition} {metric}: {self.best_model_name}")
        return self.best_model_name

    def feature_importance(self, name: str) -> Optional[pd.Series]:
        """Impurity importances for trees, absolute coefficients for the linear SVM."""
        estimator = self.results[name].estimator
        encoder = next((step for _, step in estimator.steps if isinstance(step, CategoricalEncoder)), None)
        model = estimator.named_steps["model"]
        if hasattr(model, "feature_importances_"):
            values = model.feature_importances_
        elif hasattr(model, "coef_"):
            values = np.abs(np.ravel(model.coef_))
        else:
            return None
        names = list(encoder.get_feature_names_out()) if encoder is not None else [f"feature_{i}" for i in range(len(values))]
        return pd.Series(values, index=names).sort_values(ascending=False)

    def _label_names(self) -> List[str]:
        return [f"not {self.positive_label}", self.positive_label]

    # ---------- Artifacts ----------
    def save_artifacts(self, output_dir: str, extra: Optional[Dict[str, Any]] = None):
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        logger.info(f"Saving artifacts to {out}")

        for name, result in self.results.items():
            joblib.dump(result.estimator, out / f"model_{name}.joblib")
            pd.DataFrame(result.search.cv_results_).to_csv(out / f"cv_results_{name}.csv", index=False)
        if self.best_model_name:
            joblib.dump(self.results[self.best_model_name].estimator, out / "best_model.joblib")

        metrics = {name: result.metrics for name, result in self.results.items()}
        best_params = {name: {"params": result.best_params, "cv_score": result.cv_score}
                       for name, result in self.results.items()}

        (out / "metrics.yaml").write_text(yaml.dump(to_builtin(metrics)), encoding="utf-8")
        (out / "best_params.yaml").write_text(yaml.dump(to_builtin(best_params)), encoding="utf-8")
        (out / "training_config.yaml").write_text(yaml.dump(to_builtin(redacted_config(self.config))), encoding="utf-8")
        if extra:
            (out / "run_summary.yaml").write_text(yaml.dump(to_builtin(extra)), encoding="utf-8")

        if self.experiment_tracker is not None:
            self.experiment_tracker.log_dict(to_builtin(metrics), "metrics.yaml")
            self.experiment_tracker.log_dict(to_builtin(best_params), "best_params.yaml")

        logger.info("Artifacts saved successfully")

    # ---------- Report ----------
    def build_report(self, df: pd.DataFrame, eda: Dict[str, pd.DataFrame], splits_table: pd.DataFrame,
                     X_test: pd.DataFrame, y_test: pd.Series, out: Path) -> Path:
        report_cfg = self.config.get("report", {})
        report = HTMLReport(report_cfg.get("title", "Exploratory Analysis"))
        label_names = self._label_names()
        oversampling = self.config.get("imbalance", {}).get("method") == "smote"

        report.add_heading("Outcome")
        report.add_paragraph(narrative.describe_class_balance(eda["class_balance"], self.positive_label,
                                                              oversampling=oversampling))
        report.add_figure(plot_class_balance(df[self.label_col]), caption="Records per outcome label")

        for column in self.config.get("data", {}).get("numeric_columns", []):
            if column in df.columns:
                report.add_heading(f"{column.capitalize()} by outcome")
                report.add_paragraph(narrative.describe_numeric_difference(df, column, self.label_col))
                report.add_figure(plot_numeric_by_label(df, column, self.label_col),
                                  caption=f"Distribution of {column} within each outcome group")
        if not eda["numeric_summary"].empty:
            report.add_table(eda["numeric_summary"], caption="Numeric summary by outcome")

        report.add_heading("Symptoms")
        report.add_paragraph(narrative.describe_top_associations(eda["symptom_rates"], eda["association_tests"]))
        if not eda["symptom_rates"].empty:
            report.add_figure(plot_categorical_rates(eda["symptom_rates"]),
                              caption="Share of each outcome group reporting each symptom")
        report.add_table(eda["association_tests"], caption="Chi-square tests of independence")

        report.add_heading("Partitions")
        report.add_paragraph(narrative.describe_split(splits_table))
        report.add_table(splits_table)

        report.add_heading("Models")
        cv_k = self.config.get("cross_validation", {}).get("n_splits", 5)
        report.add_paragraph(
            f"Each model was tuned by grid search with {cv_k}-fold stratified cross-validation on the "
            f"training partition, selecting hyperparameters by F-measure"
            + (", with SMOTE applied inside each training fold." if oversampling else ".")
        )
        for name, result in self.results.items():
            report.add_heading(narrative.display_name(name), level=3)
            report.add_paragraph(narrative.describe_model_result(
                name, result.metrics["validation"], result.best_params, result.cv_score))
            report.add_figure(plot_confusion_matrix(result.confusion["validation"], label_names,
                                                    title=f"{narrative.display_name(name)} (validation)"),
                              caption=f"Validation confusion matrix, {narrative.display_name(name)}")

        comparison = self.comparison("validation")
        report.add_heading("Comparison")
        report.add_paragraph(narrative.describe_model_comparison(comparison))
        report.add_table(comparison[["accuracy", "precision", "recall", "f1_score", "specificity"]])
        report.add_figure(plot_model_comparison(comparison), caption="Validation metrics per model")

        best = self.best_model_name
        best_result = self.results[best]
        report.add_heading("Held-out test evaluation")
        report.add_paragraph(narrative.describe_generalization(
            best, best_result.metrics["validation"], best_result.metrics["test"]))
        report.add_figure(plot_confusion_matrix(best_result.confusion["test"], label_names,
                                                title=f"{narrative.display_name(best)} (test)"),
                          caption="Test confusion matrix for the selected model")
        report.add_figure(plot_metric_table({
            partition: {n: r.metrics[partition] for n, r in self.results.items()}
            for partition in ("validation", "test")
        }), caption="F-measure on validation and test partitions")
        report.add_preformatted(self.evaluator.generate_classification_report(
            y_test.to_numpy(), best_result.estimator.predict(X_test), target_names=label_names))

        slice_col = self.config.get("data", {}).get("slice_column")
        if slice_col and slice_col in X_test.columns:
            y_pred = best_result.estimator.predict(X_test)
            slices = self.evaluator.slice_analysis(y_test.to_numpy(), y_pred, X_test[slice_col].to_numpy())
            if slices:
                report.add_heading(f"Test performance by {slice_col}", level=3)
                table = pd.DataFrame(slices).T[["sample_size", "accuracy", "f1_score", "sensitivity", "specificity"]]
                report.add_table(table)

        importance = self.feature_importance(best)
        if importance is not None:
            report.add_heading("What drives the selected model", level=3)
            top = ", ".join(importance.head(3).index)
            report.add_paragraph(f"The most influential inputs for {narrative.display_name(best)} are {top}.")
            report.add_figure(plot_feature_importance(importance, title=narrative.display_name(best)),
                              caption="Feature importance of the selected model")

        return report.save(out / report_cfg.get("filename", "report.html"))

    # ---------- Orchestration ----------
    def run_pipeline(self, output_dir: str, df: Optional[pd.DataFrame] = None,
                     render_report: Optional[bool] = None) -> Dict[str, Any]:
        logger.info("Starting classification pipeline...")
        start_time = time.time()
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        experiment_name = self.config.get("mlflow", {}).get("experiment_name", "clinical_eda")
        if render_report is None:
            render_report = self.config.get("report", {}).get("enabled", True)

        with tracked_run(self.experiment_tracker, experiment_name):
            if self.experiment_tracker is not None:
                self.experiment_tracker.log_params(redacted_config(self.config))

            df = self.load_data() if df is None else normalize_columns(df)
            self.validate_data(df)
            X, y = self.prepare_features(df)
            eda = self.describe_data(df)

            split_cfg = self.config.get("split", {})
            splitter = StratifiedSplitter(
                test_size=split_cfg.get("test_size", 0.2),
                val_size=split_cfg.get("val_size", 0.2),
                random_state=self.random_state,
            )
            splits = splitter.split(X, y)
            train_idx, val_idx, test_idx = splits
            splits_table = split_summary(y, splits)
            splits_table.to_csv(out / "split_summary.csv")

            X_train, y_train = X.iloc[train_idx], y.iloc[train_idx]
            X_val, y_val = X.iloc[val_idx], y.iloc[val_idx]
            X_test, y_test = X.iloc[test_idx], y.iloc[test_idx]

            self.train_models(X_train, y_train)
            val_metrics = self.evaluate(X_val, y_val, "validation")
            test_metrics = self.evaluate(X_test, y_test, "test")
            best = self.select_best()

            if self.experiment_tracker is not None:
                for partition, by_model in (("validation", val_metrics), ("test", test_metrics)):
                    for name, metrics in by_model.items():
                        self.experiment_tracker.log_metrics(
                            {f"{partition}_{name}_{k}": v for k, v in metrics.items()})

            report_path = None
            if render_report:
                report_path = self.build_report(df, eda, splits_table, X_test, y_test, out)

            summary = {
                "best_model": best,
                "best_params": self.results[best].best_params,
                "validation": val_metrics,
                "test": test_metrics,
                "report_path": str(report_path) if report_path else None,
            }
            self.save_artifacts(str(out), extra=summary)

            if self.experiment_tracker is not None:
                self.experiment_tracker.log_artifacts(str(out))
                self.experiment_tracker.log_model(self.results[best].estimator, "model")

        elapsed_time = time.time() - start_time
        best_test = test_metrics[best]
        logger.info(f"Pipeline completed in {elapsed_time:.2f} seconds")
        logger.info(f"Selected {best}: test accuracy {best_test['accuracy']:.4f}, test F1 {best_test['f1_score']:.4f}")
        return summary


# =====================
# CLI entrypoint
# =====================

def main():
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Symptom EDA and classification report")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration")
    parser.add_argument("--data", type=str, default=None, help="Local CSV instead of the configured source")
    parser.add_argument("--output", type=str, default="./reports/symptoms", help="Output directory for artifacts")
    parser.add_argument("--no-report", action="store_true", help="Skip rendering the HTML report")
    parser.add_argument("--enable-mlflow", action="store_true", help="Track the run with MLflow")
    args = parser.parse_args()

    overrides: Dict[str, Any] = {}
    if args.enable_mlflow:
        overrides["mlflow"] = {"enabled": True}
    config = load_config(args.config, overrides=overrides)

    seed = config.get("random_seed", 42)
    np.random.seed(seed)

    pipeline = ClassificationPipeline(config)
    df = pd.read_csv(args.data) if args.data else None
    pipeline.run_pipeline(args.output, df=df, render_report=not args.no_report)

    print("Training completed! Artifacts in:", args.output)


if __name__ == "__main__":
    main()
