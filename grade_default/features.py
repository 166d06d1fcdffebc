import pandas as pd

DAYS_PER_MONTH = 30.4375


def credit_history_months(issue_d: pd.Series, earliest_cr_line: pd.Series) -> pd.Series:
    """Months between the first credit line and loan issuance, floored at 0."""
    delta = (issue_d - earliest_cr_line).dt.days
    return (delta / DAYS_PER_MONTH).clip(lower=0)


def build_features(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()

    # Both dates are parsed to month starts by the cleaning step
    if "issue_d" in df.columns and "earliest_cr_line" in df.columns:
        df["credit_hist_months"] = credit_history_months(df["issue_d"], df["earliest_cr_line"])

    return df
