from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd


@dataclass(frozen=True)
class Paths:
    data_csv: Path = Path("data/LoanStats3a.csv")
    figures_dir: Path = Path("reports/figures")


@dataclass(frozen=True)
class CleaningConfig:
    # banner line above the CSV header in the raw export
    skiprows: int = 1

    # LendingClub export ends Feb 2016; loans need 5 years to mature
    observation_end: str = "2016-02-01"
    maturity_years: int = 5

    required_dates: tuple = (
        "issue_d", "last_pymnt_d", "earliest_cr_line", "last_credit_pull_d",
    )
    required_categoricals: tuple = (
        "term", "grade", "sub_grade", "emp_length", "home_ownership",
        "verification_status", "pymnt_plan", "purpose", "zip_code",
        "addr_state", "initial_list_status",
    )
    percent_cols: tuple = ("int_rate", "revol_util")
    numeric_cols: tuple = (
        "fico_range_low", "fico_range_high", "dti", "inq_last_6mths",
        "annual_inc", "delinq_2yrs",
    )
    good_statuses: frozenset = frozenset({"Current", "Fully Paid"})

    @property
    def cutoff(self) -> pd.Timestamp:
        return pd.Timestamp(self.observation_end) - pd.DateOffset(years=self.maturity_years)


_COMMON_FEATURES = (
    "term", "emp_length", "home_ownership", "annual_inc",
    "verification_status", "purpose", "dti", "delinq_2yrs",
    "fico_range_low", "fico_range_high", "inq_last_6mths",
    "revol_util", "desc_empty", "credit_hist_months",
)


def _default_features_by_grade() -> dict:
    # int_rate is close to constant inside grade A, so it is left out there
    return {
        "A": _COMMON_FEATURES + ("sub_grade",),
        "B": _COMMON_FEATURES + ("sub_grade", "int_rate"),
        "C": _COMMON_FEATURES + ("sub_grade", "int_rate"),
        "D": _COMMON_FEATURES + ("sub_grade", "int_rate", "addr_state"),
    }


@dataclass(frozen=True)
class FeatureConfig:
    grades: tuple = ("A", "B", "C", "D")
    features_by_grade: dict = field(default_factory=_default_features_by_grade)

    # fico_range_high is fico_range_low + 4 for almost every loan
    collinear_drop: str = "fico_range_high"


@dataclass(frozen=True)
class TrainConfig:
    random_state: int = 42
    train_fraction: float = 0.75
    label: str = "status"
    positive_label: str = "bad"

    # decision threshold for predicted labels; ROC plots also mark 0.25
    threshold: float = 0.5
    roc_annotate_threshold: float = 0.25


@dataclass(frozen=True)
class ReportConfig:
    plot_diagnostics: bool = False
    plot_importance: bool = False
