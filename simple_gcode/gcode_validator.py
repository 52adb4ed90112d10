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
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from simple_gcode.gcode_interpreter import DEFAULT_CONFIG
from simple_gcode.gcode_parser import GcodeParser
from simple_gcode.gcode_tokens import (
    Command,
    CoordinateSystem,
    DistanceModeToken,
    GcodeToken,
    Scaling,
    UnitsToken,
)
from simple_gcode.modal_state import DistanceMode, Units
from simple_gcode.utils.config import ParserConfig
from simple_gcode.utils.constants import DETAIL_LINE_LIMIT, DETAIL_LINE_TEXT_LIMIT
from simple_gcode.utils.exceptions import GcodeParseError, UnsupportedCommandError

HAZARD_G91 = "G91 (incremental distance mode)"
HAZARD_G93 = "G93 (inverse time feed mode)"
HAZARD_G92 = "G92 offsets"
HAZARD_G20 = "G20 (inch units)"
HAZARD_G51 = "G51 (axis scaling)"

G92_COMMANDS = (Command.G92, Command.G92_1, Command.G92_2, Command.G92_3)


@dataclass
class GcodeValidationLineIssue:
    line_no: int
    line: str
    issues: tuple[str, ...]


@dataclass
class GcodeValidationReport:
    dialect: str
    total_lines: int
    program_lines: int
    error_count: int
    errors_by_type: Counter[str]
    unsupported_commands: Counter[str]
    modal_hazards: set[str]
    warnings: list[str]
    program_end: bool
    line_issue_count: int
    line_issues: list[GcodeValidationLineIssue]
    line_issues_truncated: bool


def _hazard_for(token: GcodeToken) -> str | None:
    if isinstance(token, DistanceModeToken) and token.mode is DistanceMode.INCREMENTAL:
        return HAZARD_G91
    if isinstance(token, UnitsToken) and token.units is Units.IMPERIAL:
        return HAZARD_G20
    if isinstance(token, Scaling) and token.command is Command.G51:
        return HAZARD_G51
    if isinstance(token, CoordinateSystem) and token.command is Command.G92:
        return HAZARD_G92
    if type(token) is GcodeToken:
        if token.command is Command.G93:
            return HAZARD_G93
        if token.command in G92_COMMANDS:
            return HAZARD_G92
    return None


def validate_gcode_lines(
    lines: Iterable[str],
    config: ParserConfig = DEFAULT_CONFIG,
) -> GcodeValidationReport:
    """Parse every line under ``config`` and collect what would fail.

    Never raises for bad G-code: a failing line is recorded and parsing
    continues with the state from before that line.
    """
    parser = GcodeParser(config)
    errors_by_type: Counter[str] = Counter()
    unsupported: Counter[str] = Counter()
    modal_hazards: set[str] = set()
    line_issues: list[GcodeValidationLineIssue] = []
    line_issue_count = 0
    line_issues_truncated = False
    total = 0
    program_lines = 0

    def record(idx: int, line: str, issues: list[str]) -> None:
        nonlocal line_issue_count, line_issues_truncated
        line_issue_count += 1
        if len(line_issues) < DETAIL_LINE_LIMIT:
            line_issues.append(GcodeValidationLineIssue(idx, line, tuple(issues)))
        else:
            line_issues_truncated = True

    for idx, raw in enumerate(lines, start=1):
        total += 1
        line = raw.strip()
        issues: list[str] = []
        before = len(parser.tokens)
        try:
            if parser.parse_line(raw):
                program_lines += 1
        except GcodeParseError as exc:
            errors_by_type[type(exc).__name__] += 1
            if isinstance(exc, UnsupportedCommandError) and exc.word:
                unsupported[exc.word.upper()] += 1
            detail = exc.message if not exc.word else f"{exc.message} ({exc.word})"
            issues.append(detail)
        else:
            for token in parser.tokens[before:]:
                hazard = _hazard_for(token)
                if hazard and hazard not in modal_hazards:
                    modal_hazards.add(hazard)
                    issues.append(f"Modal hazard: {hazard}")
        if issues:
            record(idx, line, issues)

    return GcodeValidationReport(
        dialect=config.dialect.value,
        total_lines=total,
        program_lines=program_lines,
        error_count=sum(errors_by_type.values()),
        errors_by_type=errors_by_type,
        unsupported_commands=unsupported,
        modal_hazards=modal_hazards,
        warnings=list(parser.warnings),
        program_end=parser.program_end,
        line_issue_count=line_issue_count,
        line_issues=line_issues,
        line_issues_truncated=line_issues_truncated,
    )


def _format_counter(counter: Counter[str], limit: int = 5) -> str:
    items = counter.most_common(limit)
    return ", ".join(f"{key} ({count})" for key, count in items)


def format_validation_report(report: GcodeValidationReport | None) -> str:
    if report is None:
        return "G-code validation: unavailable."
    issues: list[str] = []
    if report.error_count:
        issues.append(
            f"Lines with errors: {report.error_count} "
            f"({_format_counter(report.errors_by_type)})."
        )
    if report.unsupported_commands:
        issues.append(
            f"Unsupported in {report.dialect} dialect: "
            f"{_format_counter(report.unsupported_commands)}."
        )
    if report.modal_hazards:
        hazards = ", ".join(sorted(report.modal_hazards))
        issues.append(f"Modal hazards: {hazards}.")
    if not report.program_end and report.program_lines:
        issues.append("No program end (M2/M30 or closing %).")
    if not issues:
        issues.append("No issues detected.")
    return f"G-code validation ({report.dialect}):\n- " + "\n- ".join(issues)


def _trim_detail_line(text: str, limit: int = DETAIL_LINE_TEXT_LIMIT) -> str:
    if limit <= 3:
        return text[:limit]
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def format_validation_details(report: GcodeValidationReport | None) -> str:
    if report is None:
        return "G-code validation details: unavailable."
    header = f"G-code validation details ({report.dialect}):"
    if report.line_issue_count <= 0:
        return f"{header}\nNo issues detected."
    lines: list[str] = [header]
    summary = f"Issues on {report.line_issue_count} line(s)."
    if report.line_issues_truncated:
        summary += f" Showing first {len(report.line_issues)} line(s)."
    lines.append(summary)
    for entry in report.line_issues:
        issues = "; ".join(entry.issues)
        lines.append(f"Line {entry.line_no}: {issues}")
        lines.append(f"  {_trim_detail_line(entry.line)}")
    if report.line_issues_truncated and report.line_issues:
        lines.append("... additional issue lines omitted.")
    return "\n".join(lines)
