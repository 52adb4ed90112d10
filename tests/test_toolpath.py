import math

import pytest

from simple_gcode.gcode_parser import GcodeParser
from simple_gcode.gcode_tokens import Arc, Command
from simple_gcode.toolpath import build_toolpath


def tokens_for(lines):
    parser = GcodeParser()
    parser.parse_lines(lines)
    return parser.tokens


def test_linear_moves_and_bounds():
    result = build_toolpath(tokens_for(["G0 X1 Y1", "G1 X5 Y1 Z-2 F200"]))
    assert [seg[6] for seg in result.segments] == ["rapid", "feed"]
    assert result.bounds == (0.0, 5.0, 0.0, 1.0, -2.0, 0.0)
    move = result.moves[1]
    assert move.command is Command.G1
    assert move.feed == 200.0
    assert move.dist == pytest.approx(math.sqrt(16 + 4))


def test_arc_bounds_follow_the_curve():
    result = build_toolpath(tokens_for(["G2 X10 Y0 I5 J0"]), arc_resolution=8)
    assert len(result.segments) == 8
    assert all(seg[6] == "arc" for seg in result.segments)
    minx, maxx, miny, maxy, _, _ = result.bounds
    assert maxy == pytest.approx(5.0)
    assert (minx, maxx) == pytest.approx((0.0, 10.0))
    assert result.moves[0].arc_len == pytest.approx(5.0 * math.pi)


def test_incremental_and_units_replay():
    result = build_toolpath(tokens_for(["G20 G91", "G1 X1 F10", "G1 X1"]))
    assert result.moves[-1].end[0] == pytest.approx(50.8)
    assert result.moves[0].feed == pytest.approx(254.0)


def test_inverse_time_feed_is_not_converted():
    result = build_toolpath(tokens_for(["G20 G93", "G1 X1 F2"]))
    assert result.moves[0].feed_mode == "G93"
    assert result.moves[0].feed == 2.0


def test_g92_shifts_program_position():
    result = build_toolpath(tokens_for(["G0 X10", "G92 X0", "G1 X5"]))
    assert result.moves[-1].start[0] == 0.0
    assert result.moves[-1].end[0] == 5.0


def test_degenerate_arc_is_skipped():
    bad = Arc(Command.G2, 1, (10.0, 0.0, 0.0, 0.0, 0.0, 0.0), "XY", (None, None, None), 1.0)
    result = build_toolpath([bad])
    assert result.segments == []
    assert result.bounds is None


def test_stop_request_returns_none():
    assert build_toolpath(tokens_for(["G0 X1"]), keep_running=lambda: False) is None


def test_rejects_bad_resolution():
    with pytest.raises(ValueError):
        build_toolpath([], arc_resolution=0)
