#!/usr/bin/env python3
# Simple G-code (G-code interpreter core)
# Copyright (C) 2026 Bob Kolbasowski
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# Optional (not required by the license): If you make improvements, please consider
# contributing them back upstream (e.g., via a pull request) so others can benefit.
#
# SPDX-License-Identifier: GPL-3.0-or-later
"""
    Simple G-code - command line front end
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from simple_gcode import __version__
from simple_gcode.gcode_job import GcodeJob, JobSummary
from simple_gcode.gcode_validator import (
    format_validation_details,
    format_validation_report,
    validate_gcode_lines,
)
from simple_gcode.token_store import save_tokens
from simple_gcode.toolpath import build_toolpath
from simple_gcode.utils import Dialect, Settings, parser_config_from_settings
from simple_gcode.utils.constants import AXIS_LETTERS
from simple_gcode.utils.exceptions import (
    GcodeException,
    SettingsLoadError,
    SettingsSaveError,
    SettingsValidationError,
    TokenStoreSaveError,
)
from simple_gcode.utils.logging_config import setup_logging
from simple_gcode.utils.validation import validate_arc_resolution

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simple_gcode",
        description="Interpret a G-code program and print its job summary",
    )
    parser.add_argument("file", help="G-code program to load")
    parser.add_argument(
        "--dialect",
        choices=[d.value for d in Dialect],
        help="Accepted command set (default: from settings)",
    )
    parser.add_argument("--axis-count", type=int, help="Number of machine axes, 3 to 6")
    parser.add_argument("--arc-resolution", type=int, help="Chords per arc for --toolpath")
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Skip lines that fail to parse instead of aborting",
    )
    parser.add_argument("--export-tokens", metavar="OUT", help="Write the token stream as JSON")
    parser.add_argument("--validate", action="store_true", help="Print a validation report only")
    parser.add_argument("--toolpath", action="store_true", help="Also print curve-aware toolpath bounds")
    parser.add_argument("--settings", metavar="PATH", help="Settings file to use")
    parser.add_argument("--log-dir", metavar="DIR", help="Write rotating log files to DIR")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity; -v=INFO, -vv=DEBUG")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(verbose: int, log_dir: Optional[str]) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    if log_dir:
        setup_logging(console_level=level, log_dir=Path(log_dir))
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def format_summary(summary: JobSummary, axis_count: int) -> str:
    lines = [
        f"Job: {os.path.basename(summary.name)}",
        f"Lines: {summary.line_count}  Tokens: {summary.token_count}  Skipped: {summary.skipped_lines}",
    ]
    for idx in range(axis_count):
        lo = summary.min_values[idx]
        hi = summary.max_values[idx]
        lines.append(f"{AXIS_LETTERS[idx]}: {lo:.3f} .. {hi:.3f}")
    lines.append(f"Feed: {summary.min_feed:g} .. {summary.max_feed:g}")
    if summary.lines_hash:
        lines.append(f"Hash: {summary.lines_hash}")
    return "\n".join(lines)


def _with_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Copy of ``settings`` with this run's command line options applied.

    The copy is never saved, so one-off flags do not become defaults.
    """
    run = Settings(settings.filepath)
    run.data = settings.get_all()
    if args.dialect:
        run.set("dialect", args.dialect)
    if args.axis_count is not None:
        run.set("axis_count", args.axis_count)
    if args.arc_resolution is not None:
        run.set("arc_resolution", args.arc_resolution)
    if args.continue_on_error:
        run.set("continue_on_error", True)
    return run


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    _configure_logging(args.verbose, args.log_dir)

    settings = Settings(args.settings)
    try:
        settings.load()
    except SettingsLoadError as exc:
        logger.warning(f"Using default settings: {exc}")
        settings.reset_to_defaults()
    run = _with_overrides(settings, args)
    try:
        config = parser_config_from_settings(run)
    except SettingsValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if args.validate:
        try:
            with open(args.file, "r", encoding="utf-8", errors="replace") as f:
                report = validate_gcode_lines(f, config)
        except OSError as exc:
            print(f"Error: cannot read {args.file}: {exc}", file=sys.stderr)
            return 1
        print(format_validation_report(report))
        if args.verbose:
            print(format_validation_details(report))
        return 1 if report.error_count else 0

    job = GcodeJob(config, continue_on_error=bool(run.get("continue_on_error")))
    try:
        summary = job.load_file(args.file)
    except GcodeException as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(format_summary(summary, config.axis_count))
    for warning in job.parser.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if args.toolpath:
        resolution = validate_arc_resolution(run.get("arc_resolution"))
        result = build_toolpath(job.tokens, resolution)
        if result is not None and result.bounds is not None:
            minx, maxx, miny, maxy, minz, maxz = result.bounds
            print(
                f"Toolpath: X {minx:.3f} .. {maxx:.3f}  Y {miny:.3f} .. {maxy:.3f}  "
                f"Z {minz:.3f} .. {maxz:.3f}  ({len(result.segments)} segments)"
            )

    if args.export_tokens:
        try:
            save_tokens(args.export_tokens, job.tokens)
        except TokenStoreSaveError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    settings.add_recent_file(args.file)
    try:
        settings.save()
    except SettingsSaveError as exc:
        logger.warning(f"Settings not saved: {exc}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
