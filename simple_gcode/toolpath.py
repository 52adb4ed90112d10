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
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from simple_gcode.arc_geometry import arc_length, interpolate, resolve_center
from simple_gcode.gcode_tokens import (
    Arc,
    CannedDrill,
    Command,
    CoordinateSystem,
    DistanceModeToken,
    Feedrate,
    GcodeToken,
    LinearMotion,
    SpindleSyncMotion,
    ThreadCycle,
    UnitsToken,
)
from simple_gcode.modal_state import ZERO_AXES, DistanceMode, Units, advance_position
from simple_gcode.utils.constants import ARC_RESOLUTION_DEFAULT, MM_PER_INCH
from simple_gcode.utils.exceptions import DegenerateArcError

logger = logging.getLogger(__name__)

Point3 = tuple[float, float, float]
Segment = tuple[float, float, float, float, float, float, str]

RAPID_COMMANDS = (Command.G0, Command.G28, Command.G30, Command.G53)
FEED_MODE_COMMANDS = (Command.G93, Command.G94, Command.G95)


@dataclass
class GcodeMove:
    start: Point3
    end: Point3
    command: Command
    line_number: int
    feed: float | None
    feed_mode: str
    dx: float
    dy: float
    dz: float
    dist: float
    arc_len: float | None


@dataclass
class ToolpathResult:
    segments: List[Segment]
    bounds: tuple[float, float, float, float, float, float] | None
    moves: List[GcodeMove]


def build_toolpath(
    tokens: Iterable[GcodeToken],
    arc_resolution: int = ARC_RESOLUTION_DEFAULT,
    keep_running: Optional[Callable[[], bool]] = None,
) -> Optional[ToolpathResult]:
    """Replay a token stream into drawable segments and per-move records.

    Arcs are expanded into ``arc_resolution`` chords, so the bounds follow
    the curve. Returns None when ``keep_running`` asks to stop.
    """
    if arc_resolution < 1:
        raise ValueError(f"Arc resolution must be positive, got {arc_resolution}")
    position = ZERO_AXES
    distance_mode = DistanceMode.ABSOLUTE
    imperial = False
    feed_mode = "G94"
    feed_raw: float | None = None
    segments: List[Segment] = []
    moves: List[GcodeMove] = []
    minx = miny = minz = None
    maxx = maxy = maxz = None

    def update_bounds(nx: float, ny: float, nz: float) -> None:
        nonlocal minx, maxx, miny, maxy, minz, maxz
        if minx is None:
            minx = maxx = nx
            miny = maxy = ny
            minz = maxz = nz
            return
        minx = min(minx, nx)
        maxx = max(maxx, nx)
        miny = min(miny, ny)
        maxy = max(maxy, ny)
        minz = min(minz, nz)
        maxz = max(maxz, nz)

    def feed_for_mode() -> float | None:
        if feed_raw is None or feed_mode == "G93":
            return feed_raw
        return feed_raw * MM_PER_INCH if imperial else feed_raw

    def add_move(token: GcodeToken, start: Point3, end: Point3, dist: float, arc_len: float | None) -> None:
        moves.append(
            GcodeMove(
                start=start,
                end=end,
                command=token.command,
                line_number=token.line_number,
                feed=feed_for_mode(),
                feed_mode=feed_mode,
                dx=end[0] - start[0],
                dy=end[1] - start[1],
                dz=end[2] - start[2],
                dist=dist,
                arc_len=arc_len,
            )
        )

    for token in tokens:
        if keep_running and not keep_running():
            return None

        if isinstance(token, DistanceModeToken):
            distance_mode = token.mode
            continue
        if isinstance(token, UnitsToken):
            imperial = token.units is Units.IMPERIAL
            continue
        if isinstance(token, Feedrate):
            feed_raw = token.feed
            continue
        if type(token) is GcodeToken and token.command in FEED_MODE_COMMANDS:
            feed_mode = token.command.value
            continue
        if isinstance(token, CoordinateSystem) and token.command is Command.G92:
            position = advance_position(position, token.values, token.axes, DistanceMode.ABSOLUTE)
            continue
        if not isinstance(token, (LinearMotion, Arc, CannedDrill, SpindleSyncMotion, ThreadCycle)):
            continue

        mode = distance_mode
        if token.command is Command.G53:
            mode = DistanceMode.ABSOLUTE
        target = advance_position(position, token.values, token.axes, mode)
        start: Point3 = (position[0], position[1], position[2])
        end: Point3 = (target[0], target[1], target[2])

        if isinstance(token, Arc):
            try:
                center = resolve_center(
                    start,
                    end,
                    radius=token.radius,
                    ijk=token.ijk,
                    absolute=token.ijk_mode is DistanceMode.ABSOLUTE,
                    clockwise=token.clockwise,
                    plane=token.plane,
                )
            except DegenerateArcError as exc:
                logger.debug(f"Line {token.line_number}: skipping arc, {exc.message}")
                position = target
                continue
            points = list(
                interpolate(start, end, center, token.clockwise, arc_resolution, token.plane)
            )
            for p, q in zip(points, points[1:]):
                segments.append((p[0], p[1], p[2], q[0], q[1], q[2], "arc"))
            for p in points:
                update_bounds(*p)
            dist = arc_length(start, end, center, token.clockwise, token.plane)
            add_move(token, start, end, dist, dist)
        else:
            if token.command in RAPID_COMMANDS:
                kind = "rapid"
            elif isinstance(token, CannedDrill):
                kind = "drill"
            else:
                kind = "feed"
            segments.append((*start, *end, kind))
            update_bounds(*start)
            update_bounds(*end)
            dist = math.dist(start, end)
            add_move(token, start, end, dist, None)
        position = target

    if minx is None:
        bounds = None
    else:
        bounds = (minx, maxx, miny, maxy, minz, maxz)
    return ToolpathResult(segments=segments, bounds=bounds, moves=moves)
