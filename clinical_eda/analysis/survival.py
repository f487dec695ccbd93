"""
Survival-rate Time Series Analysis

Summarizes long-format survival observations keyed by cancer type, race,
gender and year: per-series trends, gaps against a reference group, and a
narrated HTML report.
"""

import argparse
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd
import yaml

from clinical_eda.config import load_config
from clinical_eda.data_acquisition import load_dataset
from clinical_eda.pipeline.preprocessing import DataValidator, normalize_columns
from clinical_eda.reporting import HTMLReport, narrative
from clinical_eda.visualization import plot_survival_trends

logger = logging.getLogger(__name__)

SURVIVAL_KEYS = ("cancer_type", "race", "gender", "year")


def validate_survival_frame(df: pd.DataFrame, value_col: str = "survival_rate",
                            keys: Sequence[str] = SURVIVAL_KEYS) -> pd.DataFrame:
    """Check key completeness and uniqueness; returns the frame with numeric year/value columns."""
    missing = [c for c in list(keys) + [value_col] if c not in df.columns]
    if missing:
        raise ValueError(f"Survival data is missing columns: {missing}")

    out = df.copy()
    # Unparsable years or rates become NaN and fail the missing-value rules below
    out["year"] = pd.to_numeric(out["year"], errors="coerce")
    out[value_col] = pd.to_numeric(out[value_col], errors="coerce")

    validator = DataValidator()
    validator.setup_survival_rules(key_columns=keys, value_column=value_col)
    validator.check(out)

    out["year"] = out["year"].astype(int)
    return out


def filter_series(df: pd.DataFrame, **equals: Any) -> pd.DataFrame:
    """Rows where each named column equals the given value (or is in the given list)."""
    mask = pd.Series(True, index=df.index)
    for column, value in equals.items():
        if column not in df.columns:
            raise ValueError(f"Unknown column: {column}")
        if isinstance(value, (list, tuple, set)):
            mask &= df[column].isin(list(value))
        else:
            mask &= df[column] == value
    return df[mask]


def _trend(years: np.ndarray, values: np.ndarray) -> float:
    if len(np.unique(years)) < 2:
        return 0.0
    return float(np.polyfit(years.astype(float), values.astype(float), 1)[0])


def summarize_groups(df: pd.DataFrame,
                     by: Sequence[str] = ("cancer_type", "race", "gender"),
                     value_col: str = "survival_rate") -> pd.DataFrame:
    """
    One row per series with its span, level and linear trend.

    Returns:
        DataFrame indexed by ``by`` with first/last year and rate, mean rate,
        absolute change, trend_per_year (least-squares slope) and n_years
    """
    by = list(by)
    rows = []
    for key, group in df.groupby(by, sort=True):
        group = group.sort_values("year")
        years = group["year"].to_numpy()
        values = group[value_col].to_numpy()
        key = key if isinstance(key, tuple) else (key,)
        rows.append({
            **dict(zip(by, key)),
            "first_year": int(years[0]),
            "last_year": int(years[-1]),
            "first_rate": float(values[0]),
            "last_rate": float(values[-1]),
            "mean_rate": float(values.mean()),
            "change": float(values[-1] - values[0]),
            "trend_per_year": _trend(years, values),
            "n_years": int(len(np.unique(years))),
        })

    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).set_index(by)


def disparity_by_year(df: pd.DataFrame,
                      group_col: str = "race",
                      reference: str = "White",
                      by: Sequence[str] = ("cancer_type", "gender"),
                      value_col: str = "survival_rate") -> pd.DataFrame:
    """Difference between each group's rate and the reference group's rate, per series and year."""
    if reference not in set(df[group_col]):
        raise ValueError(f"Reference group {reference!r} not present in '{group_col}'")

    index_cols = list(by) + ["year"]
    wide = df.pivot_table(index=index_cols, columns=group_col, values=value_col, aggfunc="mean")
    gaps = wide.sub(wide[reference], axis=0)
    long = gaps.reset_index().melt(id_vars=index_cols, var_name=group_col, value_name="gap")
    return long.dropna(subset=["gap"]).sort_values(index_cols + [group_col]).reset_index(drop=True)


class SurvivalAnalysis:
    """Survival-series report: validate, summarize, plot, narrate."""

    def __init__(self, config: Dict):
        self.config = config
        self.survival_cfg = config.get("survival", {})
        self.value_col = self.survival_cfg.get("value_column", "survival_rate")
        self.group_by = list(self.survival_cfg.get("group_by", ["cancer_type", "race", "gender"]))

    def load_data(self) -> pd.DataFrame:
        df = load_dataset(self.survival_cfg.get("source", {}), self.config.get("dataset_service", {}))
        return normalize_columns(df)

    def run(self, df: pd.DataFrame, output_dir: str) -> Dict[str, Any]:
        start_time = time.time()
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)

        df = validate_survival_frame(normalize_columns(df), value_col=self.value_col)
        logger.info(f"Survival data: {len(df)} observations, "
                    f"{df['cancer_type'].nunique()} cancer types, years {df['year'].min()}-{df['year'].max()}")

        summary = summarize_groups(df, by=self.group_by, value_col=self.value_col)
        summary.to_csv(out / "survival_summary.csv")

        disparity_cfg = self.survival_cfg.get("disparity", {})
        group_col = disparity_cfg.get("group_col", "race")
        reference = disparity_cfg.get("reference", "White")
        disparity: Optional[pd.DataFrame] = None
        if reference in set(df[group_col]):
            other_keys = [c for c in self.group_by if c != group_col]
            disparity = disparity_by_year(df, group_col=group_col, reference=reference,
                                          by=other_keys, value_col=self.value_col)
            disparity.to_csv(out / "survival_disparity.csv", index=False)
        else:
            logger.warning(f"Reference group {reference!r} absent; skipping disparity analysis")

        report_path = None
        if self.config.get("report", {}).get("enabled", True):
            report_path = self.build_report(df, summary, disparity, group_col, reference, out)

        elapsed_time = time.time() - start_time
        logger.info(f"Survival analysis completed in {elapsed_time:.2f} seconds")
        return {"summary": summary, "disparity": disparity, "report_path": report_path}

    def build_report(self, df: pd.DataFrame, summary: pd.DataFrame,
                     disparity: Optional[pd.DataFrame], group_col: str, reference: str,
                     out: Path) -> Path:
        report_cfg = self.survival_cfg.get("report", {})
        report = HTMLReport(report_cfg.get("title", "Cancer Survival Rates"))

        report.add_heading("Data")
        report.add_paragraph(
            f"{len(df)} survival-rate observations covering {df['cancer_type'].nunique()} cancer types, "
            f"{df['race'].nunique()} race groups and years {df['year'].min()} to {df['year'].max()}."
        )

        report.add_heading("Trends")
        report.add_paragraph(narrative.describe_survival_trends(summary))
        report.add_table(summary.round(2), caption="Per-series summary")

        for cancer_type in sorted(df["cancer_type"].unique()):
            subset = filter_series(df, cancer_type=cancer_type)
            hue = group_col if group_col in subset.columns else None
            fig = plot_survival_trends(subset, value_col=self.value_col, hue=hue,
                                       title=f"{cancer_type}: survival rate by {group_col}")
            report.add_figure(fig, caption=f"{cancer_type} survival rate over time")

        if disparity is not None:
            report.add_heading(f"Gaps relative to {reference}")
            report.add_paragraph(narrative.describe_disparity(disparity, group_col, reference))
            mean_gaps = (disparity[disparity[group_col] != reference]
                         .groupby(["cancer_type", group_col])["gap"].mean()
                         .unstack(group_col))
            report.add_table(mean_gaps.round(2), caption="Mean gap in percentage points")

        return report.save(out / report_cfg.get("filename", "survival_report.html"))


def main():
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Survival-rate trend report")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration")
    parser.add_argument("--data", type=str, default=None, help="Local CSV instead of the configured source")
    parser.add_argument("--output", type=str, default="./reports/survival", help="Output directory")
    args = parser.parse_args()

    config = load_config(args.config)
    analysis = SurvivalAnalysis(config)
    df = pd.read_csv(args.data) if args.data else analysis.load_data()
    results = analysis.run(df, args.output)

    summary_path = Path(args.output) / "run_summary.yaml"
    summary_path.write_text(yaml.dump({
        "series": int(len(results["summary"])),
        "report": str(results["report_path"]) if results["report_path"] else None,
    }), encoding="utf-8")
    print("Survival report completed! Artifacts in:", args.output)


if __name__ == "__main__":
    main()
