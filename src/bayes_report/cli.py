"""Command-line entry point for standardizing data and reporting fits.

Typical usage:

    bayes_report standardize --input data.csv --output data_z.csv \\
        --except id

    bayes_report analyze --draws draws.csv --metadata model.json \\
        --data data_z.csv --effsize --output-dir reports/model1

The ``analyze`` command expects posterior draws exported as CSV (one column
per parameter) and a JSON metadata file with the model ``formula``,
``family`` and ``link`` (see :func:`bayes_report.fit.load_model_fit`).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd

from bayes_report.analyze import analyze
from bayes_report.fit import load_model_fit
from bayes_report.formatting import round3
from bayes_report.plots import save_figure
from bayes_report.posteriors import DEFAULT_CI
from bayes_report.standardize import standardize

LOGGER_NAME = "bayes_report"


def add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    """Attach the shared ``--verbose`` and ``--log-file`` flags."""

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print informational messages in addition to warnings.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path of a log file receiving all INFO records.",
    )


def configure_logging(verbose: bool, log_file: Optional[Path]) -> logging.Logger:
    """Configure and return the package logger for command-line use."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.INFO)
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    stream_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(stream_handler)
    if log_file is not None:
        log_path = log_file.expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        )
        logger.addHandler(file_handler)
    return logger


def build_parser() -> argparse.ArgumentParser:
    """Return the top-level argument parser."""

    parser = argparse.ArgumentParser(
        prog="bayes_report",
        description="Standardize data and report Bayesian regression fits.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    std = subparsers.add_parser("standardize", help="Z-score numeric CSV columns.")
    std.add_argument("--input", "-i", type=Path, required=True, help="Input CSV.")
    std.add_argument("--output", "-o", type=Path, required=True, help="Output CSV.")
    std.add_argument(
        "--subset",
        nargs="+",
        default=None,
        help="Only standardize these columns (default: all numeric columns).",
    )
    std.add_argument(
        "--except",
        dest="except_",
        nargs="+",
        default=None,
        help="Never standardize these columns.",
    )
    add_logging_arguments(std)

    rep = subparsers.add_parser("analyze", help="Summarise a fitted model.")
    rep.add_argument(
        "--draws",
        type=Path,
        required=True,
        help="CSV of posterior draws, one column per parameter.",
    )
    rep.add_argument(
        "--metadata",
        type=Path,
        required=True,
        help="JSON file with the model formula, family, link and priors.",
    )
    rep.add_argument(
        "--data",
        type=Path,
        default=None,
        help="Optional CSV with the data the model was fitted on.",
    )
    rep.add_argument(
        "--ci",
        type=float,
        default=DEFAULT_CI,
        help=f"Credible interval width in percent (default: {DEFAULT_CI}).",
    )
    rep.add_argument(
        "--effsize",
        action="store_true",
        help="Interpret coefficients as Cohen's d effect sizes.",
    )
    rep.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        default=None,
        help="Directory for summary.csv, report.txt and posteriors.png.",
    )
    add_logging_arguments(rep)
    return parser


def cmd_standardize(args: argparse.Namespace) -> int:
    """Standardize a CSV file and write the result."""

    logger = logging.getLogger(LOGGER_NAME)
    input_path = args.input.expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input CSV not found at {input_path}")
    frame = pd.read_csv(input_path)
    result = standardize(frame, subset=args.subset, except_=args.except_)
    if not isinstance(result, pd.DataFrame):
        result = pd.DataFrame({frame.columns[0]: result})
    output_path = args.output.expanduser()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    result.to_csv(output_path, index=False)
    logger.info("Wrote standardized data to %s", output_path)
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    """Analyze exported posterior draws and write the report artefacts."""

    logger = logging.getLogger(LOGGER_NAME)
    fit = load_model_fit(args.draws, args.metadata, args.data)
    result = analyze(fit, ci=args.ci, effsize=args.effsize)
    print(str(result))

    if args.output_dir is None:
        plt.close(result.plot)
        return 0
    output_dir = args.output_dir.expanduser()
    output_dir.mkdir(parents=True, exist_ok=True)
    summary = result.summary.copy()
    numeric_columns = summary.select_dtypes(include="number").columns
    summary[numeric_columns] = summary[numeric_columns].apply(
        lambda column: column.map(lambda value: round3(float(value)))
    )
    summary.to_csv(output_dir / "summary.csv", index=False)
    (output_dir / "report.txt").write_text(str(result) + "\n", encoding="utf-8")
    if result.random is not None:
        result.random.to_csv(output_dir / "random_effects.csv", index=False)
    save_figure(output_dir / "posteriors.png", result.plot)
    logger.info("Wrote report to %s", output_dir)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.log_file)

    handlers = {"standardize": cmd_standardize, "analyze": cmd_analyze}
    try:
        return handlers[args.command](args)
    except (FileNotFoundError, ValueError) as err:
        sys.stderr.write(f"[ERROR] {err}\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
