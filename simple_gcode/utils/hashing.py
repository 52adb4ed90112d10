"""Content hashes for loaded programs."""

import hashlib
from typing import Iterable, Optional


def hash_lines(lines: Iterable[str]) -> Optional[str]:
    """SHA-256 over the program text, fed one line at a time.

    Line endings are normalized, so a CRLF file hashes like its LF copy.
    Returns None for an empty program.
    """
    hasher = hashlib.sha256()
    empty = True
    for line in lines:
        hasher.update(line.rstrip("\r\n").encode("utf-8"))
        hasher.update(b"\n")
        empty = False
    return None if empty else hasher.hexdigest()
