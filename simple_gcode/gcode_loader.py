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

"""Background job loading.

Each ``load`` bumps the load token and starts a daemon worker that builds
a fresh ``GcodeJob``. Results are posted on the event queue:

    ("job_load_progress", token, path, lines_done)
    ("job_loaded", token, path, job)
    ("job_load_cancelled", token, path, lines_loaded)
    ("job_load_error", token, path, message)

Consumers compare the token against ``current_token`` and drop stale
events.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from typing import Optional

from simple_gcode.gcode_interpreter import DEFAULT_CONFIG, StripDecider, ToolSelectHandler
from simple_gcode.gcode_job import GcodeJob
from simple_gcode.utils.config import ParserConfig
from simple_gcode.utils.constants import GCODE_LOAD_PROGRESS_INTERVAL, GCODE_LOAD_PROGRESS_LINES
from simple_gcode.utils.exceptions import GcodeException, JobLoadCancelled

logger = logging.getLogger(__name__)


class JobLoader:
    def __init__(
        self,
        events: queue.Queue,
        config: ParserConfig = DEFAULT_CONFIG,
        continue_on_error: bool = False,
        strip_decider: Optional[StripDecider] = None,
        on_tool_select: Optional[ToolSelectHandler] = None,
    ):
        self.events = events
        self.config = config
        self.continue_on_error = continue_on_error
        self.strip_decider = strip_decider
        self.on_tool_select = on_tool_select
        self._load_token = 0
        self._cancel: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def current_token(self) -> int:
        return self._load_token

    def is_current(self, token: int) -> bool:
        return token == self._load_token

    def is_loading(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def cancel(self) -> None:
        """Stop the running load at the next line boundary."""
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def load(self, path: str) -> int:
        """Start loading ``path``; a previous load is cancelled. Returns the load token."""
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
            self._load_token += 1
            token = self._load_token
            cancel = threading.Event()
            self._cancel = cancel
        logger.info(f"Loading G-code: {os.path.basename(path)} (load {token})")

        def worker():
            # The worker posts into its own job queue; only the finished job
            # is handed to consumers.
            job = GcodeJob(
                self.config,
                events=queue.Queue(),
                strip_decider=self.strip_decider,
                on_tool_select=self.on_tool_select,
                continue_on_error=self.continue_on_error,
            )
            state = {"count": 0, "last": time.monotonic()}

            def keep_running() -> bool:
                if cancel.is_set() or not self.is_current(token):
                    return False
                state["count"] += 1
                now = time.monotonic()
                if (
                    state["count"] % GCODE_LOAD_PROGRESS_LINES == 0
                    or now - state["last"] >= GCODE_LOAD_PROGRESS_INTERVAL
                ):
                    state["last"] = now
                    self.events.put(("job_load_progress", token, path, state["count"]))
                return True

            try:
                job.load_file(path, keep_running=keep_running)
            except JobLoadCancelled as exc:
                logger.info(f"Load {token} cancelled after {exc.lines_loaded} lines")
                self.events.put(("job_load_cancelled", token, path, exc.lines_loaded))
                return
            except GcodeException as exc:
                logger.error(f"Load {token} failed: {exc}")
                self.events.put(("job_load_error", token, path, str(exc)))
                return
            except Exception as exc:
                logger.exception(f"Load {token} failed unexpectedly")
                self.events.put(("job_load_error", token, path, str(exc)))
                return
            if not self.is_current(token):
                logger.debug(f"Discarding stale load {token}")
                return
            self.events.put(("job_loaded", token, path, job))

        thread = threading.Thread(target=worker, daemon=True, name=f"gcode-load-{token}")
        self._thread = thread
        thread.start()
        return token
