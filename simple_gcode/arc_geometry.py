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

"""Arc center resolution and point interpolation for G2/G3.

Points are sequences of at least three values (X, Y, Z); only the first
three are used. The active plane picks the two in-plane axes and the
helix axis, see ``Plane.axes``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from simple_gcode.modal_state import Plane
from simple_gcode.utils.constants import ARC_EPSILON
from simple_gcode.utils.exceptions import DegenerateArcError

Point3 = Tuple[float, float, float]
TWO_PI = 2.0 * math.pi


@dataclass(frozen=True)
class ArcAngles:
    start: float
    end: float
    sweep: float


def _to_point(values: Sequence[float]) -> list[float]:
    return [float(values[0]), float(values[1]), float(values[2])]


def center_from_radius(
    start: Sequence[float],
    end: Sequence[float],
    radius: float,
    clockwise: bool,
    plane: Plane = Plane.XY,
) -> Point3:
    """Center of the arc through ``start`` and ``end`` with ``radius``.

    A negative radius selects the arc longer than a half circle.

    Raises:
        DegenerateArcError: If the radius is zero, the chord has zero length
            or the radius is shorter than half the chord
    """
    a0, a1, _ = plane.axes
    x = end[a0] - start[a0]
    y = end[a1] - start[a1]
    chord = math.hypot(x, y)
    if radius == 0:
        raise DegenerateArcError("Arc radius is zero", word=f"R{radius:g}")
    if chord < ARC_EPSILON:
        raise DegenerateArcError("Arc radius form needs distinct end points", word=f"R{radius:g}")

    h_x2_div_d = 4.0 * radius * radius - x * x - y * y
    if h_x2_div_d < 0:
        if h_x2_div_d < -ARC_EPSILON * max(1.0, 4.0 * radius * radius):
            raise DegenerateArcError(
                f"Arc radius {abs(radius):g} is shorter than half the chord {chord / 2.0:g}",
                word=f"R{radius:g}",
            )
        h_x2_div_d = 0.0

    h = -math.sqrt(h_x2_div_d) / chord
    if not clockwise:
        h = -h
    if radius < 0:
        h = -h

    center = _to_point(start)
    center[a0] = start[a0] + 0.5 * (x - y * h)
    center[a1] = start[a1] + 0.5 * (y + x * h)
    return center[0], center[1], center[2]


def center_from_offsets(
    start: Sequence[float],
    ijk: Sequence[Optional[float]],
    absolute: bool = False,
) -> Point3:
    """Center from I/J/K words; an unspecified (None) component keeps the start coordinate."""
    center = _to_point(start)
    for idx in range(3):
        offset = ijk[idx]
        if offset is None or (isinstance(offset, float) and math.isnan(offset)):
            continue
        center[idx] = offset if absolute else start[idx] + offset
    return center[0], center[1], center[2]


def resolve_center(
    start: Sequence[float],
    end: Sequence[float],
    *,
    radius: Optional[float] = None,
    ijk: Optional[Sequence[Optional[float]]] = None,
    absolute: bool = False,
    clockwise: bool = True,
    plane: Plane = Plane.XY,
) -> Point3:
    if radius is not None:
        return center_from_radius(start, end, radius, clockwise, plane)
    if ijk is None:
        raise ValueError("Arc needs a radius or I/J/K offsets")
    return center_from_offsets(start, ijk, absolute)


def _angle(u: float, v: float) -> float:
    ang = math.atan2(v, u)
    if ang < 0:
        ang += TWO_PI
    return ang


def arc_angles(
    start: Sequence[float],
    end: Sequence[float],
    center: Sequence[float],
    clockwise: bool,
    plane: Plane = Plane.XY,
) -> ArcAngles:
    """Start and end angles in [0, 2π) about ``center`` and the swept angle.

    An end angle of exactly 0 counts as 2π. Coincident start and end
    points describe a full circle.
    """
    a0, a1, _ = plane.axes
    start_ang = _angle(start[a0] - center[a0], start[a1] - center[a1])
    end_ang = _angle(end[a0] - center[a0], end[a1] - center[a1])
    if end_ang == 0.0:
        end_ang = TWO_PI

    if abs(end[a0] - start[a0]) < ARC_EPSILON and abs(end[a1] - start[a1]) < ARC_EPSILON:
        return ArcAngles(start_ang, end_ang, TWO_PI)

    if clockwise:
        if end_ang > start_ang:
            sweep = TWO_PI - end_ang + start_ang
        else:
            sweep = start_ang - end_ang
    else:
        if end_ang < start_ang:
            sweep = TWO_PI - start_ang + end_ang
        else:
            sweep = end_ang - start_ang
    return ArcAngles(start_ang, end_ang, sweep)


def arc_length(
    start: Sequence[float],
    end: Sequence[float],
    center: Sequence[float],
    clockwise: bool,
    plane: Plane = Plane.XY,
) -> float:
    """Path length including the helix component."""
    a0, a1, lin = plane.axes
    radius = math.hypot(start[a0] - center[a0], start[a1] - center[a1])
    planar = arc_angles(start, end, center, clockwise, plane).sweep * radius
    return math.hypot(planar, end[lin] - start[lin])


def interpolate(
    start: Sequence[float],
    end: Sequence[float],
    center: Sequence[float],
    clockwise: bool,
    resolution: int,
    plane: Plane = Plane.XY,
) -> Iterator[Point3]:
    """Yield the exact start, ``resolution - 1`` points along the arc, then the exact end.

    The helix axis moves linearly in lockstep with the angle.
    """
    if resolution < 1:
        raise ValueError(f"Arc resolution must be positive, got {resolution}")
    a0, a1, lin = plane.axes
    first = _to_point(start)
    last = _to_point(end)
    yield first[0], first[1], first[2]

    angles = arc_angles(start, end, center, clockwise, plane)
    radius = math.hypot(first[a0] - center[a0], first[a1] - center[a1])
    step = angles.sweep / resolution
    if clockwise:
        step = -step
    w_step = (last[lin] - first[lin]) / resolution

    for i in range(1, resolution):
        ang = angles.start + step * i
        point = [0.0, 0.0, 0.0]
        point[a0] = center[a0] + radius * math.cos(ang)
        point[a1] = center[a1] + radius * math.sin(ang)
        point[lin] = first[lin] + w_step * i
        yield point[0], point[1], point[2]

    yield last[0], last[1], last[2]
