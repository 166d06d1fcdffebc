import argparse
from dataclasses import replace

import numpy as np
import pandas as pd

from .config import CleaningConfig, FeatureConfig, Paths, ReportConfig, TrainConfig
from .data_prep import (
    clean_loans, features_for_grade, load_loans, select_feature_subset, stratified_split
)
from .evaluate import (
    confusion_counts, plot_bad_rate_by_grade, plot_int_rate_by_status, plot_roc, summarize
)
from .explain import plot_importance, plot_shap_summary, variable_importance
from .logger import log_model_metrics, logger
from .models import MODEL_SPECS, ModelSpec, TrainableModel
from .psi import split_psi


def _splittable(sub: pd.DataFrame, label: str, train_fraction: float) -> bool:
    counts = sub[label].value_counts()
    n_test = int(np.ceil(len(sub) * (1 - train_fraction)))
    return len(counts) == 2 and counts.min() >= 2 and n_test >= 2


def _fold_safe(spec: ModelSpec, y_train: pd.Series, grade: str) -> ModelSpec:
    """Cross-validated tuning needs every fold to see both statuses."""
    if spec.resampling != "cv":
        return spec
    minority = int(y_train.value_counts().min())
    if minority >= spec.cv_folds:
        return spec
    logger.warning(
        "Grade %s: %s fitted without cv, %d loans in the smaller class for %d folds",
        grade, spec.name, minority, spec.cv_folds,
    )
    return replace(spec, resampling="none")


def run_grade(clean: pd.DataFrame, grade: str, feature_cfg: FeatureConfig, train_cfg: TrainConfig,
              report_cfg: ReportConfig, paths: Paths, specs=MODEL_SPECS) -> list[dict]:
    label = train_cfg.label
    features = features_for_grade(feature_cfg, grade)
    sub = select_feature_subset(clean, grade, features, label=label)

    print("\n" + "=" * 72)
    print(f"GRADE {grade}: {len(sub)} loans, bad rate {(sub[label] == train_cfg.positive_label).mean():.2%}")
    print("=" * 72)

    if not _splittable(sub, label, train_cfg.train_fraction):
        logger.warning("Grade %s: not enough loans of each status to split, skipped", grade)
        return []

    train, test = stratified_split(sub, train_cfg.train_fraction, label, train_cfg.random_state)
    X_train, y_train = train.drop(columns=[label]), train[label]
    X_test, y_test = test.drop(columns=[label]), test[label]

    if report_cfg.plot_diagnostics:
        print("\nPSI test vs train:")
        for col, val in split_psi(X_train, X_test).items():
            print(f"  {col:<22s} {val:.4f}")

    results = []
    for spec in specs:
        spec = _fold_safe(spec, y_train, grade)
        model = TrainableModel(spec, random_state=train_cfg.random_state,
                               positive_label=train_cfg.positive_label)
        model.fit(X_train, y_train)

        prob = model.predict_proba(X_test)[train_cfg.positive_label]
        pred = model.predict(X_test, threshold=train_cfg.threshold)
        summary = summarize(y_test, pred, prob, positive=train_cfg.positive_label)

        print(f"\n--- {spec.name} (grade {grade}) ---")
        print(confusion_counts(pred, y_test, positive=train_cfg.positive_label))
        print(summary["report"])
        if summary["auc"] is not None:
            print(f"AUC: {summary['auc']:.4f}")
            plot_roc(
                y_test, prob,
                paths.figures_dir / f"roc_{grade}_{spec.method}.png",
                title=f"ROC: {spec.name}, grade {grade}",
                annotate_threshold=train_cfg.roc_annotate_threshold,
                positive=train_cfg.positive_label,
            )

        if report_cfg.plot_importance:
            imp = variable_importance(model, X_test, y_test)
            print("Top variables:")
            print(imp.head(10).to_string())
            plot_importance(imp, paths.figures_dir / f"importance_{grade}_{spec.method}.png",
                            title=f"Variable importance: {spec.name}, grade {grade}")
            if spec.method == "gradient_boosting":
                plot_shap_summary(model, X_test, paths.figures_dir / f"shap_{grade}.png",
                                  random_state=train_cfg.random_state)

        log_model_metrics(grade, spec.method, summary["auc"], summary["accuracy"], len(train), len(test))
        results.append({
            "grade": grade,
            "model": spec.name,
            "auc": summary["auc"],
            "accuracy": summary["accuracy"],
            "sensitivity": summary["sensitivity"],
            "specificity": summary["specificity"],
            "n_train": len(train),
            "n_test": len(test),
        })

    return results


def run_report(raw: pd.DataFrame, cleaning_cfg: CleaningConfig = None, feature_cfg: FeatureConfig = None,
               train_cfg: TrainConfig = None, report_cfg: ReportConfig = None, paths: Paths = None,
               specs=MODEL_SPECS) -> pd.DataFrame:
    cleaning_cfg = cleaning_cfg or CleaningConfig()
    feature_cfg = feature_cfg or FeatureConfig()
    train_cfg = train_cfg or TrainConfig()
    report_cfg = report_cfg or ReportConfig()
    paths = paths or Paths()

    paths.figures_dir.mkdir(parents=True, exist_ok=True)
    np.random.seed(train_cfg.random_state)

    clean = clean_loans(raw, cleaning_cfg)
    print(f"Loans issued on or before {cleaning_cfg.cutoff.date()}: {len(clean)}")
    print(clean["status"].value_counts().to_string())

    if report_cfg.plot_diagnostics:
        rates = plot_bad_rate_by_grade(clean, paths.figures_dir / "bad_rate_by_grade.png",
                                       label=train_cfg.label, positive=train_cfg.positive_label)
        print("\nBad rate by grade:")
        print(rates.to_string())
        plot_int_rate_by_status(clean, paths.figures_dir / "int_rate_by_status.png", label=train_cfg.label)

    results = []
    for grade in feature_cfg.grades:
        results.extend(run_grade(clean, grade, feature_cfg, train_cfg, report_cfg, paths, specs))

    summary = pd.DataFrame(results)
    if not summary.empty:
        print("\nSUMMARY:")
        print(summary.to_string(index=False, float_format=lambda v: f"{v:.4f}"))
    return summary


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Per-grade loan default models on LendingClub data")
    parser.add_argument("--plot-diagnostics", action="store_true",
                        help="exploratory plots and train/test PSI")
    parser.add_argument("--plot-importance", action="store_true",
                        help="variable importance (and SHAP for gradient boosting)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    paths = Paths()
    cleaning_cfg = CleaningConfig()

    raw = load_loans(paths.data_csv, skiprows=cleaning_cfg.skiprows)
    run_report(
        raw,
        cleaning_cfg=cleaning_cfg,
        report_cfg=ReportConfig(plot_diagnostics=args.plot_diagnostics, plot_importance=args.plot_importance),
        paths=paths,
    )


if __name__ == "__main__":
    main()
