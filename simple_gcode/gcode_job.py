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

"""Job aggregation: parsed program lines, tokens, bounding box and feeds.

A job is built with ``begin`` / ``append`` / ``end``. While loading,
per-line notifications are suppressed; ``end`` publishes an immutable
``JobSnapshot`` (swapped in as a single reference) and posts
``("job_changed", name)`` on the event queue. ``reset`` / ``close`` post
the same event with an empty name.

Event tuples:
    ("job_closing", name)        a loaded job is about to be replaced
    ("job_changed", name)        a job was finalized, "" when cleared
    ("job_line_added", row)      a line was appended outside a bulk load
"""

from __future__ import annotations

import logging
import math
import os
import queue
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Iterable, List, Optional, Sequence, Tuple

from simple_gcode.gcode_interpreter import DEFAULT_CONFIG, StripDecider, ToolSelectHandler
from simple_gcode.gcode_parser import GcodeParser
from simple_gcode.gcode_tokens import (
    Command,
    CoordinateSystem,
    DistanceModeToken,
    Feedrate,
    GcodeToken,
    LinearMotion,
    MOTION_TOKEN_TYPES,
)
from simple_gcode.modal_state import ZERO_AXES, DistanceMode, advance_position
from simple_gcode.utils.config import ParserConfig
from simple_gcode.utils.constants import AXIS_LETTERS
from simple_gcode.utils.exceptions import GcodeFileError, GcodeParseError, JobLoadCancelled
from simple_gcode.utils.hashing import hash_lines
from simple_gcode.utils.validation import validate_line_index

logger = logging.getLogger(__name__)
parse_log = logging.getLogger("simple_gcode.parser")

ErrorDecider = Callable[[GcodeParseError], bool]

AXIS_COUNT = len(AXIS_LETTERS)


class BoundingBox:
    """Per-axis min/max; empty axes hold +inf/-inf until normalized to 0."""

    def __init__(self):
        self.min_values: List[float] = [math.inf] * AXIS_COUNT
        self.max_values: List[float] = [-math.inf] * AXIS_COUNT

    def reset(self) -> None:
        self.min_values = [math.inf] * AXIS_COUNT
        self.max_values = [-math.inf] * AXIS_COUNT

    def add_point(self, values: Sequence[float]) -> None:
        for idx in range(min(AXIS_COUNT, len(values))):
            value = values[idx]
            if value < self.min_values[idx]:
                self.min_values[idx] = value
            if value > self.max_values[idx]:
                self.max_values[idx] = value

    def normalize(self) -> None:
        for idx in range(AXIS_COUNT):
            if self.min_values[idx] == math.inf:
                self.min_values[idx] = 0.0
                self.max_values[idx] = 0.0

    def axis(self, letter: str) -> Tuple[float, float]:
        idx = AXIS_LETTERS.index(letter.upper())
        return self.min_values[idx], self.max_values[idx]

    def copy(self) -> "BoundingBox":
        other = BoundingBox()
        other.min_values = list(self.min_values)
        other.max_values = list(self.max_values)
        return other

    def __repr__(self) -> str:
        spans = ", ".join(
            f"{letter}[{lo:g}, {hi:g}]"
            for letter, lo, hi in zip(AXIS_LETTERS, self.min_values, self.max_values)
        )
        return f"BoundingBox({spans})"


def compute_bounding_box(tokens: Iterable[GcodeToken]) -> BoundingBox:
    """Bounding box over the start and end point of every motion token.

    Arcs contribute their end points only; the swept curve is not sampled,
    so a wide arc can extend past the reported box.
    """
    box = BoundingBox()
    position = ZERO_AXES
    distance_mode = DistanceMode.ABSOLUTE
    for token in tokens:
        if isinstance(token, DistanceModeToken):
            distance_mode = token.mode
        elif isinstance(token, CoordinateSystem) and token.command is Command.G92:
            position = advance_position(position, token.values, token.axes, DistanceMode.ABSOLUTE)
        elif isinstance(token, MOTION_TOKEN_TYPES):
            mode = distance_mode
            if isinstance(token, LinearMotion) and token.command is Command.G53:
                mode = DistanceMode.ABSOLUTE
            target = advance_position(position, token.values, token.axes, mode)
            box.add_point(position)
            box.add_point(target)
            position = target
    return box


@dataclass
class JobRow:
    line_number: int
    data: str
    length: int
    is_file: bool = True
    program_end: bool = False
    sent: bool = False
    ok: bool = False


@dataclass(frozen=True)
class JobSummary:
    name: str
    line_count: int
    token_count: int
    min_values: Tuple[float, ...]
    max_values: Tuple[float, ...]
    min_feed: float
    max_feed: float
    skipped_lines: int = 0
    lines_hash: Optional[str] = None


@dataclass(frozen=True)
class JobSnapshot:
    name: str = ""
    rows: Tuple[JobRow, ...] = ()
    tokens: Tuple[GcodeToken, ...] = ()
    bounding_box: BoundingBox = field(default_factory=BoundingBox, compare=False)
    min_feed: float = 0.0
    max_feed: float = 0.0

    @property
    def loaded(self) -> bool:
        return bool(self.name) or bool(self.rows)


EMPTY_SNAPSHOT = JobSnapshot()


class GcodeJob:
    """Owns the rows, parser state and tokens of one loaded program."""

    def __init__(
        self,
        config: ParserConfig = DEFAULT_CONFIG,
        events: Optional[queue.Queue] = None,
        strip_decider: Optional[StripDecider] = None,
        on_tool_select: Optional[ToolSelectHandler] = None,
        continue_on_error: bool = False,
    ):
        self.config = config
        self.events: queue.Queue = events if events is not None else queue.Queue()
        self.continue_on_error = continue_on_error
        self.parser = GcodeParser(config, strip_decider=strip_decider, on_tool_select=on_tool_select)
        self.name = ""
        self.rows: List[JobRow] = []
        self.bounding_box = BoundingBox()
        self.min_feed = math.inf
        self.max_feed = -math.inf
        self.skipped_lines = 0
        self.loading = False
        self._commands: Deque[str] = deque()
        self._next_row = 1
        self._snapshot: JobSnapshot = EMPTY_SNAPSHOT

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------

    @property
    def tokens(self) -> List[GcodeToken]:
        return self.parser.tokens

    @property
    def program_end(self) -> bool:
        return self.parser.program_end

    @property
    def is_loaded(self) -> bool:
        return self._snapshot.loaded

    def snapshot(self) -> JobSnapshot:
        """The last finalized job; readers never observe a partial load."""
        return self._snapshot

    def _post(self, *event) -> None:
        self.events.put(event)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def _clear(self) -> None:
        self.parser.reset()
        self.name = ""
        self.rows = []
        self.bounding_box = BoundingBox()
        self.min_feed = math.inf
        self.max_feed = -math.inf
        self.skipped_lines = 0
        self.loading = False
        self._commands.clear()
        self._next_row = 1

    def begin(self, name: str) -> None:
        """Start a bulk load of a new program called ``name``."""
        if self._snapshot.loaded or self.rows:
            self._post("job_closing", self._snapshot.name or self.name)
        self._clear()
        self._snapshot = EMPTY_SNAPSHOT
        self.name = name
        self.loading = True
        logger.debug(f"Job load started: {name or '<unnamed>'}")

    def queue_command(self, command: str) -> None:
        """Queue an auxiliary line to be inserted after the next appended line."""
        self._commands.append(command)

    def _add_row(self, data: str, is_file: bool, program_end: bool = False) -> JobRow:
        row = JobRow(
            line_number=self._next_row,
            data=data,
            length=len(data) + 1,
            is_file=is_file,
            program_end=program_end,
        )
        self.rows.append(row)
        self._next_row += 1
        if not self.loading:
            self._post("job_line_added", row)
        return row

    def append(self, line: str) -> bool:
        """Parse and store ``line``.

        Returns:
            True if the line belongs to the program

        Raises:
            GcodeParseError: With line number and content, job unchanged
        """
        was_end = self.parser.program_end
        try:
            handled = self.parser.parse_line(line)
        except GcodeParseError as exc:
            raise exc.with_line(self.parser.line_number + 1, line.rstrip("\r\n"))
        if handled:
            ended = self.parser.program_end and not was_end
            self._add_row(self.parser.last_line, True, ended)
            while self._commands:
                self._add_row(self._commands.popleft(), False)
        return handled

    def end(self) -> JobSummary:
        """Finalize the job, publish its snapshot and post ``job_changed``."""
        for token in self.parser.tokens:
            if isinstance(token, Feedrate):
                self.min_feed = min(self.min_feed, token.feed)
                self.max_feed = max(self.max_feed, token.feed)
        if self.max_feed == -math.inf:
            self.min_feed = self.max_feed = 0.0

        self.bounding_box = compute_bounding_box(self.parser.tokens)
        self.bounding_box.normalize()
        self.loading = False

        self._snapshot = JobSnapshot(
            name=self.name,
            rows=tuple(self.rows),
            tokens=tuple(self.parser.tokens),
            bounding_box=self.bounding_box.copy(),
            min_feed=self.min_feed,
            max_feed=self.max_feed,
        )
        summary = self.summary()
        logger.info(
            f"Job ready: {os.path.basename(self.name) or '<unnamed>'} "
            f"({summary.line_count} lines, {summary.token_count} tokens, "
            f"{summary.skipped_lines} skipped)"
        )
        self._post("job_changed", self.name)
        return summary

    def summary(self) -> JobSummary:
        return JobSummary(
            name=self.name,
            line_count=len(self.rows),
            token_count=len(self.parser.tokens),
            min_values=tuple(self.bounding_box.min_values),
            max_values=tuple(self.bounding_box.max_values),
            min_feed=self.min_feed,
            max_feed=self.max_feed,
            skipped_lines=self.skipped_lines,
            lines_hash=hash_lines(row.data for row in self.rows if row.is_file),
        )

    def reset(self) -> None:
        """Drop all rows and state; posts ``("job_changed", "")``."""
        self._clear()
        self._snapshot = EMPTY_SNAPSHOT
        self._post("job_changed", "")

    close = reset

    # ------------------------------------------------------------------
    # bulk loading
    # ------------------------------------------------------------------

    def load_lines(
        self,
        lines: Iterable[str],
        name: str = "",
        on_error: Optional[ErrorDecider] = None,
        keep_running: Optional[Callable[[], bool]] = None,
    ) -> JobSummary:
        """Load a whole program.

        ``on_error`` decides per parse error whether to skip the line
        (True) or abort (False); without it ``continue_on_error`` applies.
        Aborting or cancelling leaves the job empty.

        Raises:
            GcodeParseError: When a line fails and loading is aborted
            JobLoadCancelled: When ``keep_running`` returns False
        """
        self.begin(name)
        for raw in lines:
            if keep_running and not keep_running():
                loaded = len(self.rows)
                self.reset()
                logger.info(f"Job load cancelled after {loaded} lines")
                raise JobLoadCancelled("Job load cancelled", lines_loaded=loaded)
            try:
                self.append(raw)
            except GcodeParseError as exc:
                parse_log.warning(f"{name or '<unnamed>'}: {exc}")
                skip = on_error(exc) if on_error is not None else self.continue_on_error
                if not skip:
                    self.reset()
                    raise
                self.skipped_lines += 1
        return self.end()

    def load_file(
        self,
        path: str,
        on_error: Optional[ErrorDecider] = None,
        keep_running: Optional[Callable[[], bool]] = None,
    ) -> JobSummary:
        """Load a program from ``path``.

        Raises:
            GcodeFileError: If the file cannot be read
        """
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return self.load_lines(f, name=path, on_error=on_error, keep_running=keep_running)
        except OSError as exc:
            self.reset()
            raise GcodeFileError(f"Failed to read {path}: {exc}") from exc

    # ------------------------------------------------------------------
    # streaming flags
    # ------------------------------------------------------------------

    def mark_sent(self, index: int) -> None:
        index = validate_line_index(index, len(self.rows) - 1)
        self.rows[index].sent = True

    def mark_ok(self, index: int) -> None:
        index = validate_line_index(index, len(self.rows) - 1)
        self.rows[index].ok = True
