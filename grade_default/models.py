from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from sklearn.compose import ColumnTransformer
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.neural_network import MLPClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.svm import SVC

from xgboost import XGBClassifier

from .logger import logger

METHODS = ("logistic", "random_forest", "gradient_boosting", "svm", "neural_network")
RESAMPLING = ("none", "cv")


@dataclass(frozen=True)
class ModelSpec:
    name: str
    method: str
    scale: bool = False          # center/scale numeric columns
    resampling: str = "none"     # "cv" tunes param_grid with stratified k-fold
    cv_folds: int = 5
    params: dict = field(default_factory=dict)
    param_grid: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValueError(f"Unknown model method {self.method!r}; expected one of {METHODS}")
        if self.resampling not in RESAMPLING:
            raise ValueError(f"Unknown resampling {self.resampling!r}; expected one of {RESAMPLING}")


MODEL_SPECS = (
    ModelSpec(
        name="Logistic regression",
        method="logistic",
        scale=True,
        params={"max_iter": 1000},
    ),
    ModelSpec(
        name="Random forest",
        method="random_forest",
        resampling="cv",
        cv_folds=3,
        params={"n_estimators": 500, "min_samples_leaf": 5},
        param_grid={"max_features": ["sqrt", 0.5]},
    ),
    ModelSpec(
        name="Gradient boosting",
        method="gradient_boosting",
        resampling="cv",
        cv_folds=3,
        params={
            "n_estimators": 300,
            "learning_rate": 0.05,
            "subsample": 0.9,
            "colsample_bytree": 0.8,
        },
        param_grid={"max_depth": [2, 3, 4]},
    ),
    ModelSpec(
        name="Support vector machine",
        method="svm",
        scale=True,
        params={"kernel": "rbf", "C": 1.0},
    ),
    ModelSpec(
        name="Neural network",
        method="neural_network",
        scale=True,
        params={"hidden_layer_sizes": (16,), "alpha": 1e-3, "max_iter": 500},
    ),
)


def make_estimator(method: str, params: dict, random_state: int):
    if method == "logistic":
        return LogisticRegression(random_state=random_state, **params)
    if method == "random_forest":
        return RandomForestClassifier(random_state=random_state, n_jobs=-1, **params)
    if method == "gradient_boosting":
        return XGBClassifier(
            objective="binary:logistic",
            eval_metric="auc",
            tree_method="hist",
            n_jobs=-1,
            random_state=random_state,
            **params,
        )
    if method == "svm":
        # probability=True fits Platt scaling so ROC curves have scores
        return SVC(probability=True, random_state=random_state, **params)
    if method == "neural_network":
        return MLPClassifier(random_state=random_state, **params)
    raise ValueError(f"Unknown model method {method!r}")


def split_columns(X: pd.DataFrame):
    cat_cols = X.select_dtypes(include=["object", "category"]).columns.tolist()
    num_cols = [c for c in X.columns if c not in cat_cols]
    return num_cols, cat_cols


def build_preprocessor(num_cols, cat_cols, scale: bool) -> ColumnTransformer:
    numeric = StandardScaler() if scale else "passthrough"
    return ColumnTransformer(
        transformers=[
            ("num", numeric, num_cols),
            ("cat", OneHotEncoder(handle_unknown="ignore"), cat_cols),
        ],
        remainder="drop",
        verbose_feature_names_out=False,
    )


def model_frame(X: pd.DataFrame) -> pd.DataFrame:
    X = X.copy()
    for c in X.select_dtypes(include="bool").columns:
        X[c] = X[c].astype(int)
    return X


class TrainableModel:
    """
    One classifier over a per-grade table. The variant is picked by
    ``spec.method``; preprocessing and resampling come from the same spec.
    Labels are strings ("good"/"bad"); ``positive_label`` is the class whose
    probability is reported.
    """

    def __init__(self, spec: ModelSpec, random_state: int = 42,
                 positive_label: str = "bad", negative_label: str = "good"):
        self.spec = spec
        self.random_state = random_state
        self.positive_label = positive_label
        self.negative_label = negative_label
        self.pipeline_ = None
        self.best_params_ = None

    @property
    def name(self) -> str:
        return self.spec.name

    def _pipeline(self, num_cols, cat_cols) -> Pipeline:
        return Pipeline(steps=[
            ("preprocess", build_preprocessor(num_cols, cat_cols, self.spec.scale)),
            ("model", make_estimator(self.spec.method, self.spec.params, self.random_state)),
        ])

    def fit(self, X: pd.DataFrame, y):
        X = model_frame(X)
        self.num_cols_, self.cat_cols_ = split_columns(X)
        target = (np.asarray(y) == self.positive_label).astype(int)

        pipe = self._pipeline(self.num_cols_, self.cat_cols_)

        if self.spec.resampling == "cv":
            cv = StratifiedKFold(n_splits=self.spec.cv_folds, shuffle=True, random_state=self.random_state)
            grid = {f"model__{k}": v for k, v in self.spec.param_grid.items()}
            search = GridSearchCV(pipe, grid, cv=cv, scoring="roc_auc", n_jobs=-1)
            search.fit(X, target)
            self.pipeline_ = search.best_estimator_
            self.best_params_ = search.best_params_
            logger.info("%s: best params %s (cv AUC %.4f)", self.name, search.best_params_, search.best_score_)
        else:
            pipe.fit(X, target)
            self.pipeline_ = pipe

        return self

    def _check_fitted(self):
        if self.pipeline_ is None:
            raise RuntimeError(f"{self.name} has not been fitted")

    def transform(self, X: pd.DataFrame):
        """Design matrix as seen by the fitted estimator."""
        self._check_fitted()
        return self.pipeline_.named_steps["preprocess"].transform(model_frame(X))

    @property
    def feature_names(self) -> list[str]:
        self._check_fitted()
        return self.pipeline_.named_steps["preprocess"].get_feature_names_out().tolist()

    @property
    def estimator(self):
        self._check_fitted()
        return self.pipeline_.named_steps["model"]

    def predict_proba(self, X: pd.DataFrame) -> pd.DataFrame:
        self._check_fitted()
        p_pos = self.pipeline_.predict_proba(model_frame(X))[:, 1]
        return pd.DataFrame(
            {self.negative_label: 1 - p_pos, self.positive_label: p_pos},
            index=X.index,
        )

    def predict(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        p_pos = self.predict_proba(X)[self.positive_label].to_numpy()
        return np.where(p_pos >= threshold, self.positive_label, self.negative_label)
