"""
Command line entry point.

    lmmselect data.csv --response reaction --group subject --fixed days --slope days

Loads a delimited file, applies the requested transforms, selects the
random-effects structure, and writes ``comparison.html`` and
``diagnostics.png`` to the output directory.

Exit codes: 0 selection resolved, 1 a candidate fit did not converge,
2 invalid input.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from lmmselect import __version__
from lmmselect.comparison import SelectionResult, select_random_structure
from lmmselect.core.compute.tolerances import DEFAULT_ALPHA
from lmmselect.core.datasource import Dataset, normalize_column_name
from lmmselect.core.exceptions import LmmSelectError, NumericalError, ValidationError
from lmmselect.diagnostics import plot_diagnostics
from lmmselect.preprocessing import log_transform, relevel, standardize_within
from lmmselect.reporting import anova_table, comparison_table, write_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NON_CONVERGED = 1
EXIT_INPUT_ERROR = 2

REPORT_NAME = 'comparison.html'
DIAGNOSTICS_NAME = 'diagnostics.png'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='lmmselect',
        description="Select the random-effects structure of a linear mixed "
                    "model by likelihood ratio tests",
    )
    parser.add_argument('path', type=Path, help="Delimited data file with a header row")
    parser.add_argument('--response', required=True, help="Response column")
    parser.add_argument('--group', required=True, help="Grouping factor (e.g. subject)")
    parser.add_argument(
        '--fixed', nargs='*', default=[], metavar='TERM',
        help="Fixed-effect terms; interactions as a:b",
    )
    parser.add_argument('--slope', default=None, help="Candidate random slope column")
    parser.add_argument(
        '--baseline', action='append', default=[], metavar='COL=LEVEL',
        help="Reference level of a factor (repeatable)",
    )
    parser.add_argument(
        '--log', action='append', default=[], metavar='COL',
        help="Replace COL by log(1 + COL) (repeatable)",
    )
    parser.add_argument(
        '--standardize', action='append', default=[], metavar='COL',
        help="Replace COL by its z-score within each group (repeatable)",
    )
    parser.add_argument(
        '--alpha', type=float, default=DEFAULT_ALPHA,
        help=f"Significance level (default: {DEFAULT_ALPHA})",
    )
    parser.add_argument(
        '--output-dir', type=Path, default=Path('results'),
        help="Output directory (default: results)",
    )
    parser.add_argument(
        '--log-level', default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help="Logging level (default: INFO)",
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    return parser


def _parse_baseline(option: str) -> tuple[str, str]:
    column, sep, level = option.partition('=')
    if not sep or not column.strip() or not level:
        raise ValidationError(f"--baseline expects COL=LEVEL, got {option!r}")
    return normalize_column_name(column), level


def _match_level(dataset: Dataset, column: str, level: str):
    """Map a level given on the command line to the column's own value."""
    dataset.require(column)
    for value in dataset[column].dropna().unique():
        if str(value) == level:
            return value
    return level


def prepare(dataset: Dataset, args: argparse.Namespace) -> Dataset:
    """Apply the command line transforms in a fixed order: baselines, logs, z-scores."""
    group = normalize_column_name(args.group)
    for option in args.baseline:
        column, level = _parse_baseline(option)
        dataset = relevel(dataset, column, _match_level(dataset, column, level))
    for column in args.log:
        column = normalize_column_name(column)
        dataset = log_transform(dataset, column, target=column)
    for column in args.standardize:
        column = normalize_column_name(column)
        dataset = standardize_within(dataset, column, by=group, target=column)
    return dataset


def write_outputs(selection: SelectionResult, output_dir: Path) -> list[Path]:
    """Write the comparison report and, for a resolved selection, the diagnostics."""
    written = []
    models = list(selection.candidates.values())
    names = [f"{state} (ML)" for state in selection.candidates]
    figures = []

    if selection.selected is not None:
        models.append(selection.selected)
        names.append(f"selected: {selection.state.value} (REML)")
        try:
            plot_diagnostics(selection.selected, output_dir / DIAGNOSTICS_NAME)
        except NumericalError as e:
            logger.warning("Skipping diagnostics: %s", e)
        else:
            written.append(output_dir / DIAGNOSTICS_NAME)
            figures.append(DIAGNOSTICS_NAME)

    tables = {}
    if models:
        tables['Models'] = comparison_table(models, names)
    if selection.comparisons:
        tables['Likelihood ratio tests'] = anova_table(selection.comparisons)

    notes = [f"Outcome: {selection.state.value} ({selection.state.description}). "
             f"{selection.reason}."]
    if selection.error:
        notes.append(f"Error: {selection.error}")
    notes.append("Signif. codes: 0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")

    written.append(write_report(
        output_dir / REPORT_NAME,
        tables,
        title="Random-effects structure selection",
        notes=notes,
        figures=figures,
    ))
    return written


def run(args: argparse.Namespace) -> int:
    dataset = Dataset.from_file(args.path)
    dataset = prepare(dataset, args)

    selection = select_random_structure(
        dataset,
        args.response,
        args.fixed,
        args.group,
        slope=args.slope,
        alpha=args.alpha,
    )

    for path in write_outputs(selection, args.output_dir):
        logger.info("Wrote %s", path)

    print(selection.summary())
    return EXIT_OK if selection.resolved else EXIT_NON_CONVERGED


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        return run(args)
    except ValidationError as e:
        logger.error("Invalid input: %s", e)
        print(f"lmmselect: error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except LmmSelectError as e:
        logger.error("Analysis failed: %s", e)
        print(f"lmmselect: error: {e}", file=sys.stderr)
        return EXIT_NON_CONVERGED
