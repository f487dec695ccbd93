"""
Test suite for figures, narrative text and the HTML report.
"""

import pytest
import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from clinical_eda.analysis import categorical_rates_by_label, summarize_groups, disparity_by_year
from clinical_eda.reporting import HTMLReport, narrative
from clinical_eda.visualization import (
    plot_categorical_rates,
    plot_class_balance,
    plot_confusion_matrix,
    plot_feature_importance,
    plot_metric_table,
    plot_model_comparison,
    plot_survival_trends,
    save_figure,
)

METRICS = {
    'accuracy': 0.9, 'precision': 0.92, 'recall': 0.88, 'f1_score': 0.9,
    'true_negatives': 30, 'false_positives': 3, 'false_negatives': 1, 'true_positives': 40,
}


class TestHTMLReport:
    """Test report assembly."""

    def test_render_escapes_text(self):
        report = HTMLReport("Title <b>")
        report.add_heading("Section & more")
        report.add_paragraph("a < b")
        report.add_list(["one", "two > one"])

        html = report.render()

        assert "<h1>Title &lt;b&gt;</h1>" in html
        assert "<h2>Section &amp; more</h2>" in html
        assert "<p>a &lt; b</p>" in html
        assert "<li>two &gt; one</li>" in html

    def test_blocks_keep_order(self):
        report = HTMLReport("Order")
        report.add_heading("First")
        report.add_table(pd.DataFrame({'x': [1.23456]}), caption="Numbers")
        report.add_preformatted("raw text")

        html = report.render()

        assert html.index("First") < html.index("Numbers") < html.index("raw text")
        assert "1.235" in html

    def test_add_figure_embeds_png_and_closes(self):
        fig, ax = plt.subplots()
        ax.plot([0, 1], [0, 1])
        report = HTMLReport("Figure")

        report.add_figure(fig, caption="Line")

        assert "data:image/png;base64," in report.render()
        assert not plt.fignum_exists(fig.number)

    def test_invalid_heading_level(self):
        with pytest.raises(ValueError):
            HTMLReport("x").add_heading("bad", level=7)

    def test_save(self, temp_directory):
        path = HTMLReport("Saved").save(temp_directory / "nested" / "report.html")
        assert path.exists()
        assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


class TestNarrative:
    """Test generated prose."""

    def test_class_balance(self):
        balance = pd.DataFrame({'count': [320, 200], 'proportion': [320 / 520, 200 / 520]},
                               index=['Positive', 'Negative'])
        text = narrative.describe_class_balance(balance, 'Positive')
        assert "520 records" in text
        assert "320 (61.5%)" in text
        assert "SMOTE" in text

        text = narrative.describe_class_balance(balance, 'Positive', oversampling=False)
        assert "SMOTE" not in text

    def test_balanced_classes(self):
        balance = pd.DataFrame({'count': [50, 50], 'proportion': [0.5, 0.5]}, index=['Positive', 'Negative'])
        assert "reasonably balanced" in narrative.describe_class_balance(balance, 'Positive')

    def test_top_associations(self, labelled_frame):
        rates = categorical_rates_by_label(labelled_frame, 'class')
        text = narrative.describe_top_associations(rates, top_n=1)
        assert text.startswith("The indicators that differ most")
        assert "Polyuria (0% of Negative vs 100% of Positive)" in text
        assert "sudden weight loss" not in text

    def test_model_result(self):
        text = narrative.describe_model_result('random_forest', METRICS,
                                               best_params={'model__max_depth': 5}, cv_score=0.91)
        assert text.startswith("Random forest")
        assert "missed 1 positive case " in text
        assert "3 false alarms" in text
        assert "max_depth=5" in text
        assert "0.910" in text

    def test_model_comparison(self):
        comparison = pd.DataFrame({'f1_score': [0.95, 0.90]}, index=['linear_svm', 'decision_tree'])
        text = narrative.describe_model_comparison(comparison)
        assert "Linear SVM scored highest" in text
        assert "0.050 lower" in text

    def test_generalization(self):
        text = narrative.describe_generalization('decision_tree', {'f1_score': 0.9}, {'f1_score': 0.8})
        assert "0.100 lower" in text

    def test_split_with_matching_rates(self):
        summary = pd.DataFrame({'rows': [100, 60, 20, 20], 'positive_rate': [0.6, 0.6, 0.62, 0.58]},
                               index=['all', 'train', 'validation', 'test'])
        text = narrative.describe_split(summary)
        assert "train 60 rows (60.0% positive)" in text
        assert "all 100 rows" not in text
        assert "stratification held" in text

    def test_split_with_drifting_rates(self):
        summary = pd.DataFrame({'rows': [100, 60, 20, 20], 'positive_rate': [0.6, 0.6, 0.4, 0.8]},
                               index=['all', 'train', 'validation', 'test'])
        text = narrative.describe_split(summary)
        assert "stratification held" not in text
        assert "drift up to 20.0%" in text

        assert "stratification held" in narrative.describe_split(summary, tolerance=0.25)

    def test_format_p_value(self):
        assert narrative.format_p_value(0.0001) == "p < 0.001"
        assert narrative.format_p_value(0.04) == "p = 0.040"

    def test_survival_text(self, survival_data):
        summary = summarize_groups(survival_data)
        assert "Across 12 series between 2010 and 2014" in narrative.describe_survival_trends(summary)

        gaps = disparity_by_year(survival_data)
        text = narrative.describe_disparity(gaps, 'race', 'White')
        assert text.startswith("Relative to White")
        assert "largest shortfall was for Black" in text


class TestPlots:
    """Every plotting helper returns a Figure."""

    def teardown_method(self):
        plt.close('all')

    def test_classification_plots(self, labelled_frame):
        rates = categorical_rates_by_label(labelled_frame, 'class')
        comparison = pd.DataFrame([METRICS, METRICS], index=['random_forest', 'decision_tree'])
        figures = [
            plot_class_balance(labelled_frame['class']),
            plot_categorical_rates(rates),
            plot_confusion_matrix(np.array([[30, 3], [1, 40]])),
            plot_model_comparison(comparison),
            plot_feature_importance(pd.Series({'polyuria': 0.4, 'age': 0.1, 'gender': 0.2})),
            plot_metric_table({'validation': {'random_forest': METRICS}, 'test': {'random_forest': METRICS}}),
        ]
        assert all(isinstance(fig, Figure) for fig in figures)

    def test_survival_plot_and_save(self, survival_data, temp_directory):
        fig = plot_survival_trends(survival_data[survival_data['cancer_type'] == 'Lung'], title="Lung")
        assert isinstance(fig, Figure)
        assert len(fig.axes) >= 2

        path = save_figure(fig, temp_directory / "plots" / "lung.png")
        assert path.exists()
