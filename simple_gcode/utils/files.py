"""File helpers shared by the settings and token stores."""

import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from .constants import TEMP_FILE_SUFFIX

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def write_text_atomic(path: PathLike, text: str, backup_suffix: Optional[str] = None) -> Path:
    """Write ``text`` next to ``path`` and move it into place.

    Readers see either the old file or the complete new one. With
    ``backup_suffix`` the previous file is copied aside first; a failed
    backup is logged and does not stop the write.

    Raises:
        OSError: If the file cannot be written
    """
    target = Path(path)
    temp_path = target.with_name(target.name + TEMP_FILE_SUFFIX)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(text)
        if backup_suffix and target.exists():
            try:
                shutil.copy2(target, target.with_name(target.name + backup_suffix))
            except OSError as e:
                logger.warning(f"Failed to back up {target.name}: {e}")
        temp_path.replace(target)
    finally:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as e:
                logger.debug(f"Failed to remove temp file {temp_path}: {e}")
    return target
