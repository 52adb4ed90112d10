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

"""Split a raw G-code line into letter/value words.

The tokenizer is stateless. Program demarcation (``%``) and program end
are tracked by the interpreter state; here a ``%`` line is only
classified as ``LineKind.DEMARCATION``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from simple_gcode.utils.constants import (
    COMMENT_CHAR,
    DEMARCATION_CHAR,
    MESSAGE_PREFIX,
    PASS_THROUGH_CHARS,
    REMOVED_LINE_PLACEHOLDER,
    VALUE_CHARS,
)
from simple_gcode.utils.exceptions import MalformedWordError, UnrecognizedWordError

NUMBER_PAT = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


class LineKind(Enum):
    WORDS = "words"
    EMPTY = "empty"
    COMMENT = "comment"
    PASS_THROUGH = "pass_through"
    DEMARCATION = "demarcation"


@dataclass(frozen=True)
class Word:
    letter: str
    value: float
    text: str
    start: int
    end: int

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class TokenizedLine:
    kind: LineKind
    source: str
    words: Tuple[Word, ...] = ()
    comments: Tuple[str, ...] = ()
    message: Optional[str] = None


def _classify(stripped: str) -> LineKind | None:
    if not stripped:
        return LineKind.EMPTY
    first = stripped[0]
    if first == COMMENT_CHAR:
        return LineKind.COMMENT
    if first in PASS_THROUGH_CHARS:
        return LineKind.PASS_THROUGH
    if first == DEMARCATION_CHAR:
        return LineKind.DEMARCATION
    return None


def _parse_value(letter: str, raw: str, line: str) -> float:
    if not NUMBER_PAT.fullmatch(raw):
        raise MalformedWordError(
            "Invalid word value",
            line_content=line,
            word=f"{letter}{raw}",
        )
    return float(raw)


def tokenize(line: str) -> TokenizedLine:
    """Split ``line`` into words.

    Raises:
        MalformedWordError: If a word value is not a plain decimal number
        UnrecognizedWordError: If a code does not start with a letter
    """
    source = line.rstrip("\r\n").replace("\ufeff", "")
    kind = _classify(source.strip())
    if kind is not None:
        return TokenizedLine(kind=kind, source=source)

    words: list[Word] = []
    comments: list[str] = []
    message: Optional[str] = None

    letter: Optional[str] = None
    letter_start = 0
    value_chars: list[str] = []
    value_end = 0

    def flush() -> None:
        nonlocal letter
        if letter is None:
            return
        raw = "".join(value_chars)
        value = _parse_value(letter, raw, source)
        words.append(Word(letter, value, f"{letter}{raw}", letter_start, value_end))
        letter = None
        value_chars.clear()

    idx = 0
    length = len(source)
    while idx < length:
        ch = source[idx]
        if ch == COMMENT_CHAR:
            break
        if ch == "(":
            flush()
            close = source.find(")", idx + 1)
            if close < 0:
                close = length
            text = source[idx + 1:close]
            comments.append(text)
            if message is None and text.upper().startswith(MESSAGE_PREFIX):
                message = text[len(MESSAGE_PREFIX):].strip()
            idx = close + 1
            continue
        if ch in VALUE_CHARS:
            if ch == " ":
                idx += 1
                continue
            if letter is None:
                raise UnrecognizedWordError(
                    "Word does not start with a letter",
                    line_content=source,
                    word=ch,
                )
            value_chars.append(ch)
            value_end = idx + 1
            idx += 1
            continue
        if ch.isspace():
            idx += 1
            continue
        if ch.isascii() and ch.isalpha():
            flush()
            letter = ch.upper()
            letter_start = idx
            value_end = idx + 1
            idx += 1
            continue
        raise UnrecognizedWordError(
            "Word does not start with a letter",
            line_content=source,
            word=ch,
        )
    flush()

    return TokenizedLine(
        kind=LineKind.WORDS,
        source=source,
        words=tuple(words),
        comments=tuple(comments),
        message=message,
    )


def remove_words(source: str, words: Iterable[Word]) -> str:
    """Remove ``words`` from ``source`` keeping the rest of the line.

    A line left without any code or comment becomes a placeholder comment.
    """
    text = source
    for word in sorted(words, key=lambda w: w.start, reverse=True):
        text = text[:word.start] + text[word.end:]
    text = " ".join(text.split())
    if not text or text.startswith(COMMENT_CHAR):
        return REMOVED_LINE_PLACEHOLDER
    return text
