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

import logging
from typing import List, Optional

from simple_gcode.gcode_interpreter import (
    DEFAULT_CONFIG,
    LineResult,
    StripDecider,
    ToolSelectHandler,
    parse_line,
)
from simple_gcode.gcode_tokenizer import tokenize
from simple_gcode.gcode_tokens import GcodeToken
from simple_gcode.modal_state import ParserState, default_state
from simple_gcode.utils.config import ParserConfig
from simple_gcode.utils.exceptions import GcodeParseError

logger = logging.getLogger(__name__)


class GcodeParser:
    """Stateful line parser owning one program's modal state and tokens.

    Each call to ``parse_line`` tokenizes and interprets one line. The
    state and token list only change when the line succeeds.
    """

    def __init__(
        self,
        config: ParserConfig = DEFAULT_CONFIG,
        strip_decider: Optional[StripDecider] = None,
        on_tool_select: Optional[ToolSelectHandler] = None,
    ):
        self.config = config
        self.strip_decider = strip_decider
        self.on_tool_select = on_tool_select
        self.state: ParserState = default_state()
        self.tokens: List[GcodeToken] = []
        self.last_line = ""
        self.last_result: Optional[LineResult] = None
        self.warnings: List[str] = []

    def reset(self) -> None:
        self.state = default_state()
        self.tokens = []
        self.last_line = ""
        self.last_result = None
        self.warnings = []

    @property
    def program_end(self) -> bool:
        return self.state.program_end

    @property
    def line_number(self) -> int:
        return self.state.line_number

    def parse_line(self, line: str) -> bool:
        """Parse ``line``; True when it belongs to the program.

        Blank lines, controller pass-through lines and anything after
        program end return False. ``last_line`` holds the line text after
        M-code stripping.

        Raises:
            GcodeParseError: If the line is invalid (state is unchanged)
        """
        if self.state.program_end:
            self.last_line = line.rstrip("\r\n")
            logger.debug(f"Ignoring line after program end: {self.last_line!r}")
            return False
        try:
            tokenized = tokenize(line)
        except GcodeParseError as exc:
            raise exc.with_line(self.state.line_number + 1, line.rstrip("\r\n"))
        result = parse_line(
            tokenized,
            self.state,
            self.config,
            strip_decider=self.strip_decider,
            on_tool_select=self.on_tool_select,
        )
        self.state = result.state
        self.tokens.extend(result.tokens)
        self.last_line = result.line
        self.last_result = result
        self.warnings.extend(result.warnings)
        return result.handled

    def parse_lines(self, lines) -> int:
        """Parse an iterable of lines, returning how many belong to the program."""
        count = 0
        for line in lines:
            if self.parse_line(line):
                count += 1
        return count
