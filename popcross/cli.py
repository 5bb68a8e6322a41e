"""Command-line interface for cross prediction and selection."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import ReportConfig, Settings, load_report_config, settings as default_settings
from .data import BreedingData
from .errors import PopcrossError
from .pipeline import load_predictions, run_pipeline, run_prediction
from .reporting import write_report, write_table

logger = logging.getLogger(__name__)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        "SEP": args.sep,
        "ID_COL": getattr(args, "id_col", None),
        "N_MARKERS": getattr(args, "n_markers", None),
        "RANDOM_SEED": getattr(args, "seed", None),
        "MODELS": getattr(args, "models", None),
        "N_SIM": getattr(args, "n_sim", None),
        "N_IND": getattr(args, "n_ind", None),
        "FRAC_SELECTED": getattr(args, "frac_selected", None),
    }
    if getattr(args, "no_self_crosses", False):
        overrides["SELF_CROSSES"] = False
    return default_settings.model_copy(update={key: value for key, value in overrides.items() if value is not None})


def _load_data(args: argparse.Namespace, settings: Settings) -> BreedingData:
    return BreedingData.from_files(
        args.phenotype,
        args.genotype,
        args.map,
        args.parents,
        sep=settings.SEP,
        id_col=settings.ID_COL,
    )


def _load_report(path: Optional[str]) -> Optional[ReportConfig]:
    if not path:
        return None
    try:
        return load_report_config(path)
    except ValidationError as exc:
        raise PopcrossError(f"Invalid report configuration {path}:\n{exc}") from exc


def command_predict(args: argparse.Namespace) -> None:
    settings = _settings_from_args(args)
    data = _load_data(args, settings)
    _, predictions = run_prediction(data, args.traits, settings)
    write_table(predictions.crosses, args.output, sep=settings.SEP)
    if args.models_out:
        write_table(predictions.models, args.models_out, sep=settings.SEP)


def command_select(args: argparse.Namespace) -> None:
    settings = _settings_from_args(args)
    report = _load_report(args.report)
    crosses = load_predictions(args.predictions, sep=settings.SEP)
    write_report(crosses, report, args.outdir, sep=settings.SEP)


def command_run(args: argparse.Namespace) -> None:
    settings = _settings_from_args(args)
    data = _load_data(args, settings)
    report = _load_report(args.report)
    run_pipeline(data, args.traits, settings, report, outdir=args.outdir or settings.RESULTS_DIR)


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--phenotype", required=True)
    parser.add_argument("--genotype", required=True)
    parser.add_argument("--map", required=True)
    parser.add_argument("--parents", required=True)
    parser.add_argument("--traits", nargs="+", required=True)
    parser.add_argument("--id-col", dest="id_col", default=None)
    parser.add_argument("--n-markers", dest="n_markers", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--models", nargs="+", default=None)
    parser.add_argument("--n-sim", dest="n_sim", type=int, default=None)
    parser.add_argument("--n-ind", dest="n_ind", type=int, default=None)
    parser.add_argument("--frac-selected", dest="frac_selected", type=float, default=None)
    parser.add_argument("--no-self-crosses", dest="no_self_crosses", action="store_true")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="popcross", description="Predict, rank and plot parent crosses")
    parser.add_argument("--sep", default=None, help="Field delimiter of input and output tables")
    parser.add_argument("--log-level", dest="log_level", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    predict_parser = subparsers.add_parser("predict", help="Predict all crosses among candidate parents")
    _add_input_arguments(predict_parser)
    predict_parser.add_argument("--output", required=True)
    predict_parser.add_argument("--models-out", dest="models_out")
    predict_parser.set_defaults(func=command_predict)

    select_parser = subparsers.add_parser("select", help="Rank a prediction table and plot selections")
    select_parser.add_argument("--predictions", required=True)
    select_parser.add_argument("--report", required=True, help="JSON file with analyses and table requests")
    select_parser.add_argument("--outdir", required=True)
    select_parser.set_defaults(func=command_select)

    run_parser = subparsers.add_parser("run", help="Predict crosses and write every report")
    _add_input_arguments(run_parser)
    run_parser.add_argument("--report", help="JSON file with analyses and table requests")
    run_parser.add_argument("--outdir")
    run_parser.set_defaults(func=command_run)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=(args.log_level or default_settings.LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        args.func(args)
    except PopcrossError as exc:
        logger.error(f"Run aborted: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
