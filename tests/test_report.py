from dataclasses import replace

import pandas as pd
import pytest

from grade_default.config import FeatureConfig, Paths, ReportConfig
from grade_default.models import MODEL_SPECS, ModelSpec
from grade_default.report import _fold_safe, main, parse_args, run_report

from conftest import make_raw_loans

LOGISTIC = replace(MODEL_SPECS[0], resampling="none")


def test_run_report_covers_every_grade(tmp_path, capsys):
    paths = Paths(data_csv=tmp_path / "unused.csv", figures_dir=tmp_path / "figures")

    summary = run_report(
        make_raw_loans(),
        report_cfg=ReportConfig(plot_diagnostics=True, plot_importance=True),
        paths=paths,
        specs=(LOGISTIC,),
    )

    assert list(summary["grade"]) == ["A", "B", "C", "D"]
    assert (summary["n_train"] + summary["n_test"] > 0).all()
    assert summary["auc"].between(0, 1).all()

    for grade in "ABCD":
        assert (paths.figures_dir / f"roc_{grade}_logistic.png").exists()
        assert (paths.figures_dir / f"importance_{grade}_logistic.png").exists()
    assert (paths.figures_dir / "bad_rate_by_grade.png").exists()

    out = capsys.readouterr().out
    assert "GRADE C" in out
    assert "PSI test vs train" in out


def test_grade_without_both_statuses_is_skipped(tmp_path):
    raw = make_raw_loans()
    raw.loc[raw["grade"] == "A", "loan_status"] = "Fully Paid"
    paths = Paths(figures_dir=tmp_path / "figures")

    summary = run_report(raw, paths=paths, specs=(LOGISTIC,),
                         feature_cfg=replace(FeatureConfig(), grades=("A", "B")))

    assert list(summary["grade"]) == ["B"]


def test_parse_args_toggles():
    args = parse_args([])
    assert not args.plot_diagnostics and not args.plot_importance

    args = parse_args(["--plot-diagnostics", "--plot-importance"])
    assert args.plot_diagnostics and args.plot_importance


def test_main_reports_missing_data_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        main([])


def _light(spec):
    # fewer trees keeps the full five-model run quick
    if "n_estimators" in spec.params:
        return replace(spec, params={**spec.params, "n_estimators": 40})
    return spec


def test_run_report_with_default_models_and_importance(tmp_path):
    paths = Paths(figures_dir=tmp_path / "figures")
    specs = tuple(_light(s) for s in MODEL_SPECS)
    assert {s.resampling for s in specs} == {"none", "cv"}

    summary = run_report(
        make_raw_loans(),
        report_cfg=ReportConfig(plot_importance=True),
        paths=paths,
        specs=specs,
    )

    assert len(summary) == 4 * len(MODEL_SPECS)
    assert summary["auc"].between(0, 1).all()
    for grade in "ABCD":
        for spec in specs:
            assert (paths.figures_dir / f"roc_{grade}_{spec.method}.png").exists()
            assert (paths.figures_dir / f"importance_{grade}_{spec.method}.png").exists()
        assert (paths.figures_dir / f"shap_{grade}.png").exists()


def test_cv_falls_back_when_bad_loans_are_scarce(tmp_path, caplog):
    raw = make_raw_loans()
    grade_a = raw.index[raw["grade"] == "A"]
    raw.loc[grade_a, "loan_status"] = "Fully Paid"
    raw.loc[grade_a[:3], "loan_status"] = "Charged Off"

    tuned = ModelSpec(
        name="Logistic regression",
        method="logistic",
        scale=True,
        resampling="cv",
        cv_folds=3,
        params={"max_iter": 1000},
        param_grid={"C": [0.1, 1.0]},
    )

    with caplog.at_level("WARNING", logger="grade_default"):
        summary = run_report(raw, paths=Paths(figures_dir=tmp_path / "figures"), specs=(tuned,),
                             feature_cfg=replace(FeatureConfig(), grades=("A",)))

    assert list(summary["grade"]) == ["A"]
    assert summary.loc[0, "n_train"] + summary.loc[0, "n_test"] == len(grade_a)
    assert "fitted without cv" in caplog.text


def test_fold_safe_keeps_cv_with_enough_bad_loans():
    y = pd.Series(["bad"] * 5 + ["good"] * 20)
    spec = ModelSpec(name="Random forest", method="random_forest", resampling="cv", cv_folds=3)

    assert _fold_safe(spec, y, "B").resampling == "cv"
    assert _fold_safe(spec, y.iloc[3:], "B").resampling == "none"
    assert _fold_safe(LOGISTIC, y.iloc[3:], "B") is LOGISTIC
