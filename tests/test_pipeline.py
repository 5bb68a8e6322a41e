from pathlib import Path

import pandas as pd
import pytest

from popcross.cli import main
from popcross.config import AnalysisConfig, ReportConfig, TopTableConfig, load_report_config
from popcross.errors import DataFormatError
from popcross.pipeline import load_predictions, run_pipeline
from popcross.selection import parent_tally, select_best


def test_five_parents_top_twenty_percent(five_parent_data, settings, stub_predictor, tmp_path):
    result = run_pipeline(five_parent_data, ["yield"], settings, outdir=tmp_path, predictor=stub_predictor)
    crosses = result.predictions.crosses
    assert len(crosses) == 25
    assert result.predictions.dropped == 0
    assert (crosses["Parent1"] == crosses["Parent2"]).sum() == 5

    analysis = AnalysisConfig(name="yield", x_trait="yield", y_trait="yield", percent=20)
    selection = select_best(crosses, analysis)
    assert len(selection.best) == 5
    assert parent_tally(selection.best).sum() == 10
    assert selection.best["yield_pred_mu"].tolist() == [25.0, 24.0, 23.0, 22.0, 21.0]
    assert (tmp_path / "predictions.csv").exists()


def test_default_engine_end_to_end(breeding_data, settings, data_dir, tmp_path):
    report = load_report_config(data_dir / "report.json")
    settings = settings.model_copy(update={"N_MARKERS": 8})
    result = run_pipeline(breeding_data, ["yield", "height"], settings, report, outdir=tmp_path)

    assert result.cohort.dropped == 2
    assert len(result.predictions.crosses) == 16
    names = {path.name for path in result.outputs["tables"] + result.outputs["figures"]}
    assert {
        "predictions.csv",
        "models.csv",
        "top25_yield.csv",
        "top25_height_mu_sp_high.csv",
        "intersect_yield_height.csv",
        "best_yield_height.csv",
        "best_height_low_yield_high.csv",
        "plot_yield_height.png",
        "plot_height_low_yield_high.png",
    } <= names

    reloaded = load_predictions(tmp_path / "predictions.csv")
    assert reloaded["Parent1"].tolist() == result.predictions.crosses["Parent1"].tolist()


def test_cli_predict_then_select(data_dir, tmp_path):
    table = tmp_path / "predictions.csv"
    main(
        [
            "predict",
            "--phenotype", str(data_dir / "phenotypes.csv"),
            "--genotype", str(data_dir / "genotypes.csv"),
            "--map", str(data_dir / "map.csv"),
            "--parents", str(data_dir / "parents.csv"),
            "--traits", "yield", "height",
            "--n-markers", "10",
            "--seed", "3",
            "--n-sim", "2",
            "--n-ind", "10",
            "--no-self-crosses",
            "--output", str(table),
        ]
    )
    crosses = pd.read_csv(table)
    assert len(crosses) == 12
    assert not (crosses["Parent1"] == crosses["Parent2"]).any()

    main(["select", "--predictions", str(table), "--report", str(data_dir / "report.json"), "--outdir", str(tmp_path / "report")])
    assert (tmp_path / "report" / "plot_yield_height.png").exists()
    assert (tmp_path / "report" / "best_yield_height.csv").exists()


def test_cli_aborts_on_marker_map_mismatch(data_dir, tmp_path):
    bad_map = tmp_path / "map.csv"
    lines = (data_dir / "map.csv").read_text().splitlines()
    bad_map.write_text("\n".join([lines[0], lines[2], lines[1]] + lines[3:]) + "\n")
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "run",
                "--phenotype", str(data_dir / "phenotypes.csv"),
                "--genotype", str(data_dir / "genotypes.csv"),
                "--map", str(bad_map),
                "--parents", str(data_dir / "parents.csv"),
                "--traits", "yield",
                "--outdir", str(tmp_path / "out"),
            ]
        )
    assert excinfo.value.code == 1
    assert not (tmp_path / "out").exists()


def test_cli_rejects_invalid_report(data_dir, tmp_path):
    report = tmp_path / "report.json"
    report.write_text('{"analyses": [{"name": "x", "x_trait": "yield", "y_trait": "height", "percent": 150}]}')
    with pytest.raises(SystemExit) as excinfo:
        main(["select", "--predictions", str(tmp_path / "missing.csv"), "--report", str(report), "--outdir", str(tmp_path)])
    assert excinfo.value.code == 1


def test_report_config_defaults():
    config = ReportConfig.model_validate({"analyses": [{"name": "a", "x_trait": "x", "y_trait": "y", "year": 2020}]})
    analysis = config.analyses[0]
    assert analysis.year == "2020"
    assert analysis.x_column == "x_pred_mu"
    assert analysis.primary_column == "x_pred_mu"
    assert config.top_tables == [] and config.intersections == []


def test_report_traits_are_checked_before_prediction(five_parent_data, settings, tmp_path):
    calls = []

    def predictor(*args, **kwargs):
        calls.append(args)
        raise AssertionError("predictor should not run")

    report = ReportConfig(
        analyses=[AnalysisConfig(name="yp", x_trait="yield", y_trait="protein")],
        top_tables=[TopTableConfig(trait="oil")],
    )
    outdir = tmp_path / "out"
    with pytest.raises(DataFormatError, match="protein"):
        run_pipeline(five_parent_data, ["yield"], settings, report, outdir=outdir, predictor=predictor)
    assert calls == []
    assert not outdir.exists()


def test_report_lists_every_named_trait():
    config = ReportConfig.model_validate(
        {
            "analyses": [{"name": "a", "x_trait": "yield", "y_trait": "height"}],
            "top_tables": [{"trait": "oil"}, {"trait": "yield"}],
            "intersections": [{"name": "b", "traits": ["height", "protein"]}],
        }
    )
    assert config.traits() == ["yield", "height", "oil", "protein"]


def test_cli_aborts_on_unpredicted_report_trait(data_dir, tmp_path):
    report = tmp_path / "report.json"
    report.write_text('{"analyses": [{"name": "yp", "x_trait": "yield", "y_trait": "protein"}]}')
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "run",
                "--phenotype", str(data_dir / "phenotypes.csv"),
                "--genotype", str(data_dir / "genotypes.csv"),
                "--map", str(data_dir / "map.csv"),
                "--parents", str(data_dir / "parents.csv"),
                "--traits", "yield",
                "--report", str(report),
                "--outdir", str(tmp_path / "out"),
            ]
        )
    assert excinfo.value.code == 1
    assert not (tmp_path / "out").exists()


def test_cli_aborts_on_zero_markers(data_dir, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "run",
                "--phenotype", str(data_dir / "phenotypes.csv"),
                "--genotype", str(data_dir / "genotypes.csv"),
                "--map", str(data_dir / "map.csv"),
                "--parents", str(data_dir / "parents.csv"),
                "--traits", "yield",
                "--n-markers", "0",
                "--outdir", str(tmp_path / "out"),
            ]
        )
    assert excinfo.value.code == 1
    assert not (tmp_path / "out").exists()
