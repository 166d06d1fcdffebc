import re

import numpy as np
import pandas as pd
import shap
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from sklearn.inspection import permutation_importance

from .models import TrainableModel, model_frame


def sanitize_feature_names(names: list[str]) -> list[str]:
    """
    XGBoost rejects feature names containing [, ] or <, which one-hot names
    such as "emp_length_< 1 year" do. Names stay unique after cleaning.
    """
    cleaned = []
    seen = {}
    for n in names:
        c = n.replace("[", "_lb_").replace("]", "_rb_").replace("<", "_lt_")
        c = re.sub(r"[^0-9a-zA-Z_:\-\.]", "_", c)

        if c in seen:
            seen[c] += 1
            c = f"{c}__{seen[c]}"
        else:
            seen[c] = 0
        cleaned.append(c)
    return cleaned


def variable_importance(model: TrainableModel, X: pd.DataFrame = None, y=None,
                        n_repeats: int = 5) -> pd.Series:
    """
    Ranked importance, most important first.

    Trees report their own impurity/gain importance and linear models their
    absolute coefficients, both on the one-hot design matrix. Anything else
    (RBF SVM, neural network) falls back to permutation importance on the raw
    columns, which needs a held-out X and y.
    """
    est = model.estimator

    if hasattr(est, "feature_importances_"):
        values = np.asarray(est.feature_importances_, dtype=float)
        index = model.feature_names
    elif hasattr(est, "coef_"):
        values = np.abs(np.asarray(est.coef_, dtype=float)).ravel()
        index = model.feature_names
    else:
        if X is None or y is None:
            raise ValueError(f"{model.name} needs X and y for permutation importance")
        target = (np.asarray(y) == model.positive_label).astype(int)
        result = permutation_importance(
            model.pipeline_, model_frame(X), target,
            scoring="roc_auc", n_repeats=n_repeats, random_state=model.random_state,
        )
        values = result.importances_mean
        index = list(X.columns)

    imp = pd.Series(values, index=index, name="importance")
    return imp.sort_values(ascending=False)


def plot_importance(imp: pd.Series, path, title: str, top: int = 15):
    top_imp = imp.head(top).iloc[::-1]

    plt.figure(figsize=(7, max(3, 0.35 * len(top_imp))))
    plt.barh(top_imp.index, top_imp.values)
    plt.xlabel("Importance")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()


def plot_shap_summary(model: TrainableModel, X: pd.DataFrame, path, max_rows: int = 2000, random_state: int = 42):
    """SHAP summary for the boosted-tree variant."""
    if model.spec.method != "gradient_boosting":
        raise ValueError(f"SHAP summary is only drawn for gradient boosting, not {model.spec.method}")

    if len(X) > max_rows:
        X = X.sample(max_rows, random_state=random_state)

    X_trans = model.transform(X)
    # SHAP prefers dense for plotting
    if hasattr(X_trans, "toarray"):
        X_trans = X_trans.toarray()
    X_trans_df = pd.DataFrame(X_trans, columns=sanitize_feature_names(model.feature_names))

    explainer = shap.TreeExplainer(model.estimator)
    shap_values = explainer(X_trans_df)

    plt.figure()
    shap.summary_plot(shap_values, X_trans_df, show=False)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
