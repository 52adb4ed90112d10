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

"""JSON persistence for token streams.

Document layout::

    {"format": "simple_gcode.tokens", "version": 1,
     "tokens": [{"kind": "LinearMotion", "command": "G1", "line_number": 3, ...}]}

Enum fields are stored by value, tuples as lists.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import typing
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List

from simple_gcode.gcode_tokens import TOKEN_TYPES, GcodeToken
from simple_gcode.utils.constants import TOKEN_STORE_FORMAT, TOKEN_STORE_VERSION
from simple_gcode.utils.exceptions import TokenStoreLoadError, TokenStoreSaveError
from simple_gcode.utils.files import write_text_atomic

logger = logging.getLogger(__name__)

TOKEN_KINDS = {cls.__name__: cls for cls in TOKEN_TYPES}
_HINTS: Dict[type, Dict[str, Any]] = {}


def _hints(cls: type) -> Dict[str, Any]:
    hints = _HINTS.get(cls)
    if hints is None:
        hints = typing.get_type_hints(cls)
        _HINTS[cls] = hints
    return hints


def _encode_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_encode_value(item) for item in value]
    return value


def token_to_dict(token: GcodeToken) -> Dict[str, Any]:
    record: Dict[str, Any] = {"kind": type(token).__name__}
    for f in dataclasses.fields(token):
        record[f.name] = _encode_value(getattr(token, f.name))
    return record


def token_from_dict(record: Dict[str, Any]) -> GcodeToken:
    """Rebuild a token from a ``token_to_dict`` record.

    Raises:
        TokenStoreLoadError: If the kind, command or a field is unknown
    """
    kind = record.get("kind")
    cls = TOKEN_KINDS.get(kind)
    if cls is None:
        raise TokenStoreLoadError(f"Unknown token kind: {kind!r}")
    hints = _hints(cls)
    kwargs: Dict[str, Any] = {}
    for name, raw in record.items():
        if name == "kind":
            continue
        if name not in hints:
            raise TokenStoreLoadError(f"Unknown field {name!r} for {kind}")
        hint = hints[name]
        try:
            if isinstance(hint, type) and issubclass(hint, Enum):
                kwargs[name] = hint(raw)
            elif isinstance(raw, list):
                kwargs[name] = tuple(raw)
            else:
                kwargs[name] = raw
        except ValueError as exc:
            raise TokenStoreLoadError(f"Invalid {name} for {kind}: {raw!r}") from exc
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise TokenStoreLoadError(f"Incomplete {kind} record: {exc}") from exc


def dumps_tokens(tokens: Iterable[GcodeToken], indent: int | None = None) -> str:
    document = {
        "format": TOKEN_STORE_FORMAT,
        "version": TOKEN_STORE_VERSION,
        "tokens": [token_to_dict(token) for token in tokens],
    }
    return json.dumps(document, indent=indent, allow_nan=False)


def loads_tokens(text: str) -> List[GcodeToken]:
    """Parse a token document.

    Raises:
        TokenStoreLoadError: If the text is not a valid token document
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TokenStoreLoadError(f"Invalid JSON: {exc}") from exc
    if not isinstance(document, dict) or document.get("format") != TOKEN_STORE_FORMAT:
        raise TokenStoreLoadError("Not a token document")
    version = document.get("version")
    if version != TOKEN_STORE_VERSION:
        raise TokenStoreLoadError(f"Unsupported token document version: {version!r}")
    records = document.get("tokens")
    if not isinstance(records, list):
        raise TokenStoreLoadError("Token document has no token list")
    return [token_from_dict(record) for record in records]


def save_tokens(path: str | Path, tokens: Iterable[GcodeToken]) -> None:
    """Write ``tokens`` to ``path`` atomically.

    Raises:
        TokenStoreSaveError: If the file cannot be written
    """
    try:
        target = write_text_atomic(path, dumps_tokens(tokens, indent=1))
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to write tokens: {e}")
        raise TokenStoreSaveError(f"Failed to save: {e}")
    logger.info(f"Tokens saved to {target}")


def load_tokens(path: str | Path) -> List[GcodeToken]:
    """Read a token document from ``path``.

    Raises:
        TokenStoreLoadError: If the file is missing or invalid
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise TokenStoreLoadError(f"Failed to read {path}: {e}") from e
    return loads_tokens(text)


__all__ = [
    "TOKEN_KINDS",
    "dumps_tokens",
    "load_tokens",
    "loads_tokens",
    "save_tokens",
    "token_from_dict",
    "token_to_dict",
]
