import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from sklearn.metrics import (
    accuracy_score, classification_report, confusion_matrix, roc_auc_score, roc_curve
)


def confusion_counts(predicted, actual, positive: str = "bad", negative: str = "good") -> pd.DataFrame:
    """Rows are actual classes, columns predicted; negative class first."""
    labels = [negative, positive]
    cm = confusion_matrix(np.asarray(actual), np.asarray(predicted), labels=labels)
    return pd.DataFrame(
        cm,
        index=pd.Index(labels, name="actual"),
        columns=pd.Index(labels, name="predicted"),
    )


def summarize(actual, predicted, prob_positive, positive: str = "bad", negative: str = "good") -> dict:
    actual = np.asarray(actual)
    predicted = np.asarray(predicted)

    cm = confusion_counts(predicted, actual, positive=positive, negative=negative)
    tp = cm.loc[positive, positive]
    fn = cm.loc[positive, negative]
    tn = cm.loc[negative, negative]
    fp = cm.loc[negative, positive]

    # AUC is undefined when the test set holds a single class
    auc = None
    if len(np.unique(actual)) == 2:
        auc = float(roc_auc_score(actual == positive, prob_positive))

    return {
        "accuracy": float(accuracy_score(actual, predicted)),
        "sensitivity": float(tp / (tp + fn)) if (tp + fn) else float("nan"),
        "specificity": float(tn / (tn + fp)) if (tn + fp) else float("nan"),
        "auc": auc,
        "report": classification_report(
            actual, predicted, labels=[negative, positive], zero_division=0
        ),
    }


def roc_points(actual, prob_positive, positive: str = "bad") -> pd.DataFrame:
    fpr, tpr, thresholds = roc_curve(np.asarray(actual), np.asarray(prob_positive), pos_label=positive)
    return pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})


def plot_roc(actual, prob_positive, path, title: str, annotate_threshold: float = 0.25, positive: str = "bad"):
    pts = roc_points(actual, prob_positive, positive=positive)
    auc = roc_auc_score(np.asarray(actual) == positive, prob_positive)

    # roc_curve's first threshold is +inf; nearest finite cut to the annotation
    finite = pts[np.isfinite(pts["threshold"])]
    mark = finite.iloc[(finite["threshold"] - annotate_threshold).abs().argmin()]

    plt.figure()
    plt.plot(pts["fpr"], pts["tpr"], label=f"AUC = {auc:.3f}")
    plt.plot([0, 1], [0, 1], linestyle="--", color="grey")
    plt.scatter([mark["fpr"]], [mark["tpr"]], color="red", zorder=3)
    plt.annotate(
        f"p = {annotate_threshold:.2f}",
        (mark["fpr"], mark["tpr"]),
        textcoords="offset points",
        xytext=(10, -12),
    )
    plt.xlabel("False positive rate")
    plt.ylabel("True positive rate")
    plt.title(title)
    plt.legend(loc="lower right")
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    return pts


def plot_bad_rate_by_grade(df: pd.DataFrame, path, label: str = "status", positive: str = "bad"):
    rates = (
        df.assign(_bad=df[label] == positive)
        .groupby(df["grade"].astype(str))["_bad"]
        .mean()
        .sort_index()
    )

    plt.figure()
    plt.bar(rates.index, rates.values)
    plt.xlabel("Grade")
    plt.ylabel("Bad loan rate")
    plt.title("Bad loan rate by grade")
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    return rates


def plot_int_rate_by_status(df: pd.DataFrame, path, label: str = "status"):
    plt.figure()
    for status, grp in df.groupby(label):
        plt.hist(grp["int_rate"].dropna(), bins=30, alpha=0.5, density=True, label=str(status))
    plt.xlabel("Interest rate (%)")
    plt.ylabel("Density")
    plt.title("Interest rate by loan status")
    plt.legend()
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
