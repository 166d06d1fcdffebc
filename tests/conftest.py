import numpy as np
import pandas as pd
import pytest

BASE_BAD_RATE = {"A": 0.08, "B": 0.15, "C": 0.22, "D": 0.30}


def make_raw_loans(n: int = 480, seed: int = 0) -> pd.DataFrame:
    """String-typed rows shaped like the raw LendingClub 2007-2011 export."""
    rng = np.random.default_rng(seed)

    grades = np.array(list("ABCD"))[np.arange(n) % 4]
    months = pd.date_range("2008-01-01", "2010-12-01", freq="MS")
    issue = pd.DatetimeIndex(rng.choice(months, n))
    earliest = issue - pd.to_timedelta(rng.integers(2, 20, n) * 365, unit="D")

    fico_low = rng.integers(660, 800, n)
    int_rate = np.array([{"A": 7.0, "B": 11.0, "C": 14.0, "D": 17.0}[g] for g in grades]) + rng.normal(0, 0.8, n)

    # riskier for low FICO so models have something to find
    p_bad = np.array([BASE_BAD_RATE[g] for g in grades]) + (740 - fico_low) / 800
    bad = rng.random(n) < np.clip(p_bad, 0.05, 0.9)
    good_status = rng.choice(["Fully Paid", "Current"], n, p=[0.8, 0.2])
    bad_status = rng.choice(["Charged Off", "Default", "Late (31-120 days)"], n, p=[0.8, 0.1, 0.1])

    desc = rng.choice(["", "Consolidating card debt", None], n, p=[0.4, 0.4, 0.2])

    return pd.DataFrame({
        "id": np.arange(n).astype(str),
        "issue_d": issue.strftime("%b-%Y"),
        "last_pymnt_d": "Jan-2016",
        "earliest_cr_line": earliest.strftime("%b-%Y"),
        "last_credit_pull_d": "Feb-2016",
        "term": rng.choice([" 36 months", " 60 months"], n),
        "grade": grades,
        "sub_grade": [f"{g}{k}" for g, k in zip(grades, rng.integers(1, 6, n))],
        "emp_length": rng.choice(["< 1 year", "1 year", "5 years", "10+ years"], n),
        "home_ownership": rng.choice(["RENT", "MORTGAGE", "OWN"], n),
        "verification_status": rng.choice(["Verified", "Not Verified", "Source Verified"], n),
        "pymnt_plan": "n",
        "purpose": rng.choice(["debt_consolidation", "credit_card", "other"], n),
        "zip_code": rng.choice(["100xx", "941xx", "606xx"], n),
        "addr_state": rng.choice(["NY", "CA", "IL"], n),
        "initial_list_status": "f",
        "int_rate": [f"{r:.2f}%" for r in int_rate],
        "revol_util": [f"{u:.1f}%" for u in rng.uniform(0, 99, n)],
        "fico_range_low": fico_low,
        "fico_range_high": fico_low + 4,
        "dti": rng.uniform(0, 30, n).round(2),
        "inq_last_6mths": rng.integers(0, 5, n),
        "annual_inc": rng.lognormal(11, 0.5, n).round(0),
        "delinq_2yrs": rng.integers(0, 3, n),
        "desc": desc,
        "loan_status": np.where(bad, bad_status, good_status),
    })


@pytest.fixture
def raw_loans() -> pd.DataFrame:
    return make_raw_loans()


@pytest.fixture
def clean(raw_loans):
    from grade_default.data_prep import clean_loans
    return clean_loans(raw_loans)


@pytest.fixture
def grade_b_split(clean):
    from grade_default.config import FeatureConfig
    from grade_default.data_prep import features_for_grade, select_feature_subset, stratified_split

    sub = select_feature_subset(clean, "B", features_for_grade(FeatureConfig(), "B"))
    train, test = stratified_split(sub, 0.75, "status", 42)
    return (
        train.drop(columns=["status"]), train["status"],
        test.drop(columns=["status"]), test["status"],
    )
