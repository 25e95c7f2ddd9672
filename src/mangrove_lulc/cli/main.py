"""Command-line interface for mangrove_lulc."""

from __future__ import annotations

import argparse
import json
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import Any, Dict, Optional

from mangrove_lulc import constants
from mangrove_lulc.accuracy import format_metric
from mangrove_lulc.application.use_cases.classify_raster import run_classification
from mangrove_lulc.application.use_cases.train_model import run_training
from mangrove_lulc.classifier_config import CLASSIFIER_CODES
from mangrove_lulc.config import ClassificationConfig, load_config
from mangrove_lulc.domain.exceptions import ConfigurationError, LulcException
from mangrove_lulc.logging import get_recent_log_output, show_error


class _CLIProgress:
    """Simple stdout progress helper for CLI users."""

    def __init__(self) -> None:
        self._last_text: str = ""
        self._last_percent: int = -1

    def setProgress(self, value: float | int) -> None:
        percent = max(0, min(100, int(float(value))))
        if percent != self._last_percent:
            self._last_percent = percent
            print(f"[mangrove-lulc] progress {percent}%", flush=True)

    def setProgressText(self, text: str) -> None:
        message = text.strip()
        if message and message != self._last_text:
            self._last_text = message
            print(f"[mangrove-lulc] {message}", flush=True)


def _parse_config_option(value: Optional[str]) -> Dict[str, Any]:
    """Parse ``--config``: inline JSON, or ``@path`` to a JSON file."""
    if value is None:
        return {}
    trimmed = value.strip()
    if not trimmed:
        return {}
    if trimmed.startswith("@"):
        file_path = Path(trimmed[1:])
        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")
        text = file_path.read_text(encoding="utf-8")
    else:
        text = trimmed
    try:
        options = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON configuration: {exc}") from exc
    if not isinstance(options, dict):
        raise ConfigurationError("Configuration must be a JSON object")
    return options


def _build_config(args: argparse.Namespace) -> ClassificationConfig:
    config = ClassificationConfig()
    if args.config_file:
        config = load_config(args.config_file, base=config)
    config = config.updated(_parse_config_option(args.config))
    overrides = {
        "model_kind": args.classifier,
        "train_fraction": args.train_fraction,
        "sample_size_per_class": args.sample_size,
        "seed": args.seed,
        "tree_count": args.trees,
    }
    return config.updated(overrides)


def _report_error(exc: LulcException) -> int:
    show_error("mangrove-lulc CLI Error", exc, get_recent_log_output(20) or None)
    return 1


def _run_pipeline(args: argparse.Namespace) -> int:
    progress = _CLIProgress()
    try:
        config = _build_config(args)
        result = run_training(
            raster_path=args.raster,
            vector_path=args.vector,
            output_path=args.output,
            matrix_path=args.matrix_path,
            model_path=args.model,
            signatures_path=args.signatures,
            config=config,
            feedback=progress,
        )
    except LulcException as exc:
        return _report_error(exc)
    print(f"Classification output written to {args.output}")
    print(
        f"Overall accuracy: {format_metric(result.report.overall_accuracy)} "
        f"(kappa {format_metric(result.report.kappa)}, {result.report.matrix.total()} validation pixels)",
    )
    return 0


def _run_classify(args: argparse.Namespace) -> int:
    progress = _CLIProgress()
    try:
        run_classification(
            raster_path=args.raster,
            model_path=args.model,
            output_path=args.output,
            block_rows=args.block_rows,
            nodata=args.nodata,
            feedback=progress,
        )
    except LulcException as exc:
        return _report_error(exc)
    print(f"Classification output written to {args.output}")
    return 0


def _configure_cli() -> ArgumentParser:
    parser = argparse.ArgumentParser(prog="mangrove-lulc", description="Supervised land-cover classification")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Split, train, classify and assess from raster/polygons")
    run_parser.add_argument("--raster", required=True, help="Path to multi-band input raster")
    run_parser.add_argument("--vector", required=True, help="Path to reference polygons")
    run_parser.add_argument("--output", required=True, help="Path to output classification raster")
    run_parser.add_argument("--matrix-path", help="Optional path for confusion matrix CSV")
    run_parser.add_argument("--model", help="Optional path to save the trained model")
    run_parser.add_argument("--signatures", help="Optional path for spectral signature CSV")
    run_parser.add_argument(
        "--classifier",
        help=f"Classifier code ({', '.join(CLASSIFIER_CODES)}) or name",
    )
    run_parser.add_argument("--train-fraction", type=float, help="Share of polygons per class used for training")
    run_parser.add_argument("--sample-size", type=int, help="Training pixels drawn per class")
    run_parser.add_argument("--seed", type=int, help="Random seed")
    run_parser.add_argument("--trees", type=int, help="Number of trees (random forest)")
    run_parser.add_argument("--config-file", help="Path to JSON configuration file")
    run_parser.add_argument("--config", help="JSON string or @path to JSON file with configuration options")
    run_parser.set_defaults(func=_run_pipeline)

    classify_parser = subparsers.add_parser("classify", help="Apply a saved model to a raster")
    classify_parser.add_argument("--raster", required=True, help="Path to input raster")
    classify_parser.add_argument("--model", required=True, help="Path to trained model")
    classify_parser.add_argument("--output", required=True, help="Path to output raster")
    classify_parser.add_argument("--block-rows", type=int, default=constants.DEFAULT_BLOCK_ROWS, help="Rows per block")
    classify_parser.add_argument("--nodata", type=int, default=constants.NODATA_CLASS, help="NODATA class value")
    classify_parser.set_defaults(func=_run_classify)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = _configure_cli()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
