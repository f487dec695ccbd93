"""
Synthetic Symptom and Survival Data Generator

Produces seeded stand-ins for the two remote datasets: a cross-sectional
symptom survey with a binary diagnosis label, and a long-format series of
cancer survival rates by cancer type, race, gender and year. The remote
signed URL expires, so these are what tests and offline runs use.
"""

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import yaml

logger = logging.getLogger(__name__)

# Probability of reporting each symptom given (Positive, Negative) diagnosis
SYMPTOM_RATES: Dict[str, tuple] = {
    'polyuria': (0.76, 0.08),
    'polydipsia': (0.70, 0.04),
    'sudden_weight_loss': (0.59, 0.14),
    'weakness': (0.68, 0.43),
    'polyphagia': (0.59, 0.24),
    'genital_thrush': (0.26, 0.17),
    'visual_blurring': (0.55, 0.29),
    'itching': (0.48, 0.50),
    'irritability': (0.34, 0.08),
    'delayed_healing': (0.48, 0.43),
    'partial_paresis': (0.60, 0.16),
    'muscle_stiffness': (0.42, 0.30),
    'alopecia': (0.24, 0.50),
    'obesity': (0.19, 0.14),
}

SYMPTOM_COLUMNS: List[str] = list(SYMPTOM_RATES)


class SymptomDataGenerator:
    """Generate a symptom survey with a binary diagnosis label."""

    def __init__(self, seed: int = 42,
                 positive_label: str = 'Positive',
                 negative_label: str = 'Negative'):
        self.seed = seed
        self.positive_label = positive_label
        self.negative_label = negative_label
        self.rng = np.random.default_rng(seed)

    def generate_dataset(self, num_individuals: int = 520,
                         positive_prevalence: float = 0.6) -> pd.DataFrame:
        """
        Generate one row per individual.

        Args:
            num_individuals: Number of rows
            positive_prevalence: Share of rows labelled positive

        Returns:
            DataFrame with age, gender, symptom indicators and ``class``
        """
        if num_individuals <= 0:
            raise ValueError("num_individuals must be positive")
        if not 0.0 < positive_prevalence < 1.0:
            raise ValueError("positive_prevalence must be in (0, 1)")

        logger.info(f"Generating {num_individuals} individuals with {positive_prevalence:.1%} positive")

        # Exact positive count, shuffled
        n_positive = int(round(num_individuals * positive_prevalence))
        is_positive = np.zeros(num_individuals, dtype=bool)
        is_positive[:n_positive] = True
        self.rng.shuffle(is_positive)

        age = np.where(
            is_positive,
            self.rng.normal(49, 12, size=num_individuals),
            self.rng.normal(46, 12, size=num_individuals),
        )
        age = np.clip(np.round(age), 16, 90).astype(int)

        female_prob = np.where(is_positive, 0.54, 0.10)
        gender = np.where(self.rng.random(num_individuals) < female_prob, 'Female', 'Male')

        data = {'age': age, 'gender': gender}
        for symptom, (pos_rate, neg_rate) in SYMPTOM_RATES.items():
            prob = np.where(is_positive, pos_rate, neg_rate)
            data[symptom] = np.where(self.rng.random(num_individuals) < prob, 'Yes', 'No')

        data['class'] = np.where(is_positive, self.positive_label, self.negative_label)
        df = pd.DataFrame(data)

        logger.info(f"Generated symptom dataset: {df.shape}")
        return df


class SurvivalSeriesGenerator:
    """Generate long-format survival rates keyed by cancer type, race, gender and year."""

    BASE_RATES = {
        'Breast': 88.0,
        'Prostate': 95.0,
        'Colorectal': 63.0,
        'Lung': 18.0,
        'Pancreas': 8.0,
    }

    RACE_OFFSETS = {
        'White': 0.0,
        'Black': -7.0,
        'Asian/Pacific Islander': 1.5,
        'Hispanic': -2.0,
    }

    GENDER_OFFSETS = {'Male': -1.0, 'Female': 1.0}

    def __init__(self, seed: int = 42, noise_sd: float = 1.0):
        self.seed = seed
        self.noise_sd = noise_sd
        self.rng = np.random.default_rng(seed)

    def generate_series(self,
                        cancer_types: Optional[Sequence[str]] = None,
                        races: Optional[Sequence[str]] = None,
                        genders: Optional[Sequence[str]] = None,
                        years: Optional[Sequence[int]] = None) -> pd.DataFrame:
        """Generate one survival-rate observation per key combination."""
        cancer_types = list(cancer_types or self.BASE_RATES)
        races = list(races or self.RACE_OFFSETS)
        genders = list(genders or self.GENDER_OFFSETS)
        years = list(years or range(2000, 2016))

        records = []
        for cancer_type in cancer_types:
            base = self.BASE_RATES.get(cancer_type, 50.0)
            # Per-type improvement in percentage points per year
            slope = self.rng.uniform(0.1, 0.6)
            for race in races:
                race_offset = self.RACE_OFFSETS.get(race, 0.0)
                for gender in genders:
                    if cancer_type == 'Prostate' and gender == 'Female':
                        continue
                    gender_offset = self.GENDER_OFFSETS.get(gender, 0.0)
                    for i, year in enumerate(years):
                        rate = base + race_offset + gender_offset + slope * i
                        rate += self.rng.normal(0, self.noise_sd)
                        records.append({
                            'cancer_type': cancer_type,
                            'race': race,
                            'gender': gender,
                            'year': int(year),
                            'survival_rate': round(float(np.clip(rate, 0.0, 100.0)), 1),
                        })

        df = pd.DataFrame(records)
        logger.info(f"Generated survival series: {df.shape}")
        return df


def main():
    """Write synthetic datasets and a summary file."""
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Generate synthetic symptom and survival datasets")
    parser.add_argument("--num_individuals", type=int, default=520,
                        help="Number of symptom survey rows")
    parser.add_argument("--prevalence", type=float, default=0.6,
                        help="Share of positive diagnoses")
    parser.add_argument("--output_dir", type=str, default="./data/raw",
                        help="Output directory")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    symptoms = SymptomDataGenerator(seed=args.seed).generate_dataset(
        num_individuals=args.num_individuals,
        positive_prevalence=args.prevalence,
    )
    symptoms_path = output_dir / "diabetes_symptoms.csv"
    symptoms.to_csv(symptoms_path, index=False)
    logger.info(f"Symptom data saved to {symptoms_path}")

    survival = SurvivalSeriesGenerator(seed=args.seed).generate_series()
    survival_path = output_dir / "survival_rates.csv"
    survival.to_csv(survival_path, index=False)
    logger.info(f"Survival data saved to {survival_path}")

    summary = {
        'symptoms': {
            'rows': len(symptoms),
            'positive_rate': float((symptoms['class'] == 'Positive').mean()),
            'columns': list(symptoms.columns),
        },
        'survival': {
            'rows': len(survival),
            'cancer_types': sorted(survival['cancer_type'].unique().tolist()),
            'years': [int(survival['year'].min()), int(survival['year'].max())],
        },
        'seed': args.seed,
    }
    summary_path = output_dir / "data_summary.yaml"
    with open(summary_path, 'w') as f:
        yaml.dump(summary, f, default_flow_style=False)
    logger.info(f"Summary saved to {summary_path}")


if __name__ == "__main__":
    main()
