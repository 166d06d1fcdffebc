from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from .config import CleaningConfig, FeatureConfig
from .features import build_features
from .logger import logger

# LendingClub month strings look like "Jun-2007"
MONTH_FORMAT = "%b-%Y"


class ParseError(ValueError):
    """A required field could not be converted to its target type."""


def _is_empty(s: pd.Series) -> pd.Series:
    return s.isna() | s.astype(str).str.strip().eq("")


def _drop_rows(df: pd.DataFrame, mask: pd.Series, reason: str, malformed: bool = False) -> pd.DataFrame:
    n = int(mask.sum())
    if n:
        log = logger.warning if malformed else logger.info
        log("Dropped %d rows: %s", n, reason)
    return df.loc[~mask].copy()


def load_loans(path, skiprows: int = 1) -> pd.DataFrame:
    """Read the raw LendingClub export. The file opens with a one-line banner."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing: {path}")
    df = pd.read_csv(path, skiprows=skiprows, low_memory=False)
    logger.info("Loaded %d rows x %d columns from %s", df.shape[0], df.shape[1], path)
    return df


def parse_month(raw) -> pd.Timestamp:
    """Parse 'Jun-2007' to the first day of that month."""
    if raw is None or (isinstance(raw, float) and np.isnan(raw)):
        raise ParseError("empty month value")
    s = str(raw).strip()
    if not s:
        raise ParseError("empty month value")

    dt = pd.to_datetime(s, format=MONTH_FORMAT, errors="coerce")
    if pd.isna(dt):
        raise ParseError(f"unparseable month value: {raw!r}")
    return dt


def parse_date_columns(df: pd.DataFrame, cols) -> pd.DataFrame:
    """Vectorised parse_month; rows with a malformed non-empty date are dropped."""
    df = df.copy()
    for col in cols:
        empty = _is_empty(df[col])
        parsed = pd.to_datetime(df[col].astype(str).str.strip(), format=MONTH_FORMAT, errors="coerce")
        bad = parsed.isna() & ~empty
        df[col] = parsed
        df = _drop_rows(df, bad, f"unparseable {col}", malformed=True)
    return df


def apply_maturity_window(df: pd.DataFrame, cutoff) -> pd.DataFrame:
    # Younger loans have not had time to default; inclusive at the cutoff
    cutoff = pd.Timestamp(cutoff)
    return _drop_rows(df, ~(df["issue_d"] <= cutoff), f"issued after {cutoff.date()}")


def parse_percent(raw) -> float:
    """'13.49%' -> 13.49. Whitespace around the number and the sign is ignored."""
    if isinstance(raw, (int, float, np.number)) and not isinstance(raw, bool):
        value = float(raw)
    else:
        s = "" if raw is None else str(raw).strip()
        if s.endswith("%"):
            s = s[:-1].strip()
        try:
            value = float(s)
        except ValueError:
            raise ParseError(f"not a percentage: {raw!r}") from None

    if not np.isfinite(value):
        raise ParseError(f"not a percentage: {raw!r}")
    return value


def parse_percent_columns(df: pd.DataFrame, cols) -> pd.DataFrame:
    """
    Percent strings -> float. Missing values stay missing and are handled when
    the modeling subset is projected; malformed values drop the row.
    """
    df = df.copy()
    for col in cols:
        if col not in df.columns:
            continue
        missing = _is_empty(df[col])
        stripped = df[col].astype(str).str.strip().str.rstrip("%").str.strip()
        values = pd.to_numeric(stripped.where(~missing), errors="coerce")
        bad = values.isna() & ~missing
        df[col] = values
        df = _drop_rows(df, bad, f"malformed percentage in {col}", malformed=True)
    return df


def coerce_numeric_columns(df: pd.DataFrame, cols) -> pd.DataFrame:
    """Missing numbers stay missing; malformed non-empty values drop the row."""
    df = df.copy()
    for col in cols:
        if col not in df.columns:
            continue
        missing = _is_empty(df[col])
        values = pd.to_numeric(df[col].astype(str).str.strip().where(~missing), errors="coerce")
        bad = values.isna() & ~missing
        df[col] = values
        df = _drop_rows(df, bad, f"malformed number in {col}", malformed=True)
    return df


def drop_empty_categorical(df: pd.DataFrame, field: str) -> pd.DataFrame:
    df = _drop_rows(df, _is_empty(df[field]), f"empty {field}")
    # Label set comes from the surviving values only
    df[field] = df[field].astype(str).str.strip().astype("category")
    return df


def derive_status(df: pd.DataFrame, good_statuses=frozenset({"Current", "Fully Paid"})) -> pd.DataFrame:
    """
    Binary outcome: good if the loan is current or paid off, bad otherwise.
    Charged Off, Default, Late and In Grace Period all fold into bad.
    """
    df = _drop_rows(df, _is_empty(df["loan_status"]), "empty loan_status")
    status = df["loan_status"].astype(str).str.strip()
    df["status"] = np.where(status.isin(good_statuses), "good", "bad")
    return df


def derive_desc_empty(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["desc_empty"] = _is_empty(df["desc"])
    return df


def remove_collinear_feature(features, feature_to_drop: str) -> list[str]:
    return [f for f in features if f != feature_to_drop]


def features_for_grade(cfg: FeatureConfig, grade: str) -> list[str]:
    if grade not in cfg.features_by_grade:
        raise KeyError(f"No feature set configured for grade {grade!r}")
    return remove_collinear_feature(cfg.features_by_grade[grade], cfg.collinear_drop)


def select_feature_subset(df: pd.DataFrame, grade: str, features, label: str = "status") -> pd.DataFrame:
    """One grade, projected onto features + label, with no missing values."""
    cols = list(dict.fromkeys(list(features) + [label]))
    absent = [c for c in cols if c not in df.columns]
    if absent:
        raise KeyError(f"Columns not in cleaned data: {absent}")

    sub = df.loc[df["grade"].astype(str) == grade, cols].copy()

    # No imputation: incomplete rows leave the modeling population
    incomplete = pd.concat([_is_empty(sub[c]) for c in cols], axis=1).any(axis=1)
    sub = _drop_rows(sub, incomplete, f"missing values in grade {grade} subset")

    for c in sub.select_dtypes(include="category").columns:
        sub[c] = sub[c].cat.remove_unused_categories()
    return sub


def stratified_split(df: pd.DataFrame, train_fraction: float = 0.75, label: str = "status", seed: int = 42):
    train, test = train_test_split(
        df,
        train_size=train_fraction,
        stratify=df[label],
        random_state=seed,
    )
    return train.copy(), test.copy()


def clean_loans(df: pd.DataFrame, cfg: CleaningConfig | None = None) -> pd.DataFrame:
    cfg = cfg or CleaningConfig()
    n_raw = len(df)

    # Empty required fields are filtered before anything is parsed
    for col in cfg.required_dates:
        df = _drop_rows(df, _is_empty(df[col]), f"empty {col}")
    for col in cfg.required_categoricals:
        df = drop_empty_categorical(df, col)

    df = parse_date_columns(df, cfg.required_dates)
    df = apply_maturity_window(df, cfg.cutoff)
    df = parse_percent_columns(df, cfg.percent_cols)
    df = coerce_numeric_columns(df, cfg.numeric_cols)
    df = derive_desc_empty(df)
    df = derive_status(df, cfg.good_statuses)
    df = build_features(df)

    for c in df.select_dtypes(include="category").columns:
        df[c] = df[c].cat.remove_unused_categories()

    df = df.reset_index(drop=True)
    logger.info("Cleaned loans: %d of %d rows kept", len(df), n_raw)
    return df
