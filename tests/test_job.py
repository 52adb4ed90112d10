import queue

import pytest

from simple_gcode.gcode_job import EMPTY_SNAPSHOT, GcodeJob, compute_bounding_box
from simple_gcode.gcode_parser import GcodeParser
from simple_gcode.utils.exceptions import (
    GcodeFileError,
    InvalidRangeError,
    JobLoadCancelled,
    MalformedWordError,
    ModalGroupViolationError,
)
from simple_gcode.utils.hashing import hash_lines


def drain(q):
    events = []
    while True:
        try:
            events.append(q.get_nowait())
        except queue.Empty:
            return events


@pytest.fixture
def events():
    return queue.Queue()


@pytest.fixture
def job(events):
    return GcodeJob(events=events)


def test_bounding_box_from_endpoints(job):
    summary = job.load_lines(["G1 X10 Y5", "G1 X-3 Y20"], name="two.nc")
    assert summary.min_values[:3] == (-3.0, 0.0, 0.0)
    assert summary.max_values[:3] == (10.0, 20.0, 0.0)
    assert job.bounding_box.axis("Y") == (0.0, 20.0)
    assert job.bounding_box.axis("Z") == (0.0, 0.0)


def test_bounding_box_ignores_arc_bulge(job):
    job.load_lines(["G2 X10 Y0 I5 J0"])
    assert job.bounding_box.axis("Y") == (0.0, 0.0)


def test_bounding_box_replays_incremental_moves():
    parser = GcodeParser()
    parser.parse_lines(["G91", "G1 X5", "G1 X5 Y-2"])
    box = compute_bounding_box(parser.tokens)
    assert box.axis("X") == (0.0, 10.0)
    assert box.axis("Y") == (-2.0, 0.0)


def test_load_posts_job_changed(job, events):
    job.load_lines(["G0 X1"], name="a.nc")
    assert drain(events) == [("job_changed", "a.nc")]

    job.load_lines(["G0 X2"], name="b.nc")
    assert drain(events) == [("job_closing", "a.nc"), ("job_changed", "b.nc")]

    job.reset()
    assert drain(events) == [("job_changed", "")]
    assert job.snapshot() is EMPTY_SNAPSHOT


def test_append_outside_bulk_load_posts_rows(job, events):
    assert job.append("G0 X1")
    (event,) = drain(events)
    assert event[0] == "job_line_added"
    assert event[1].data == "G0 X1"


def test_queued_commands_follow_next_line(job):
    job.begin("queued")
    job.queue_command("$G")
    job.append("G0 X1")
    job.end()
    assert [(row.data, row.is_file) for row in job.rows] == [("G0 X1", True), ("$G", False)]
    assert job.rows[0].length == len("G0 X1") + 1


def test_program_end_row_and_trailing_lines(job):
    job.load_lines(["G0 X1", "M30", "G0 X2", "not gcode ??"])
    assert [row.data for row in job.rows] == ["G0 X1", "M30"]
    assert [row.program_end for row in job.rows] == [False, True]
    assert job.program_end


def test_line_numbering_restarts_per_job(job):
    job.load_lines(["G0 X1", "G0 X2"])
    job.load_lines(["G0 X3"])
    assert [row.line_number for row in job.rows] == [1]


def test_every_stored_row_gets_its_own_number(job):
    job.begin("rows.nc")
    job.append("%")
    job.append("; header")
    job.append("G0 X1")
    job.queue_command("M0")
    job.append("G1 X2")
    job.end()
    assert [(row.line_number, row.data) for row in job.rows] == [
        (1, "%"),
        (2, "; header"),
        (3, "G0 X1"),
        (4, "G1 X2"),
        (5, "M0"),
    ]
    assert [row.is_file for row in job.rows] == [True, True, True, True, False]


def test_feed_extremes(job):
    summary = job.load_lines(["G1 X1 F100", "G1 X2 F300", "G1 X3 F200"])
    assert (summary.min_feed, summary.max_feed) == (100.0, 300.0)


def test_feed_extremes_default_to_zero(job):
    summary = job.load_lines(["G0 X1"])
    assert (summary.min_feed, summary.max_feed) == (0.0, 0.0)


def test_summary_counts_and_hash(job):
    lines = ["G21 G90", "G0 X1", "; comment", "", "M30"]
    summary = job.load_lines(lines, name="prog.nc")
    assert summary.line_count == 4
    assert summary.token_count == len(job.tokens)
    assert summary.lines_hash == hash_lines(["G21 G90", "G0 X1", "; comment", "M30"])


def test_parse_error_aborts_and_clears(job, events):
    with pytest.raises(ModalGroupViolationError) as excinfo:
        job.load_lines(["G0 X1", "G0 G1 X2"], name="bad.nc")
    assert excinfo.value.line_number == 2
    assert excinfo.value.line_content == "G0 G1 X2"
    assert job.rows == []
    assert not job.is_loaded
    assert drain(events)[-1] == ("job_changed", "")


def test_tokenizer_error_carries_line_number(job):
    with pytest.raises(MalformedWordError) as excinfo:
        job.load_lines(["G0 X1", "G1 X1.2.3"])
    assert excinfo.value.line_number == 2


def test_error_callback_can_skip_lines(job):
    seen = []

    def on_error(exc):
        seen.append(exc.line_number)
        return True

    summary = job.load_lines(["G0 X1", "G0 G1 X2", "G0 X3"], on_error=on_error)
    assert seen == [2]
    assert summary.skipped_lines == 1
    assert [row.data for row in job.rows] == ["G0 X1", "G0 X3"]


def test_continue_on_error_default(events):
    job = GcodeJob(events=events, continue_on_error=True)
    summary = job.load_lines(["G0 X1", "G1 X1 X2", "G0 X3"])
    assert summary.skipped_lines == 1
    assert summary.line_count == 2


def test_cancel_rolls_back(job):
    calls = {"n": 0}

    def keep_running():
        calls["n"] += 1
        return calls["n"] < 3

    with pytest.raises(JobLoadCancelled) as excinfo:
        job.load_lines(["G0 X1", "G0 X2", "G0 X3"], keep_running=keep_running)
    assert excinfo.value.lines_loaded == 2
    assert job.rows == []


def test_snapshot_is_published_at_end(job):
    job.begin("snap.nc")
    job.append("G0 X1")
    assert job.snapshot() is EMPTY_SNAPSHOT
    job.end()
    snap = job.snapshot()
    assert snap.name == "snap.nc"
    assert len(snap.rows) == 1
    assert isinstance(snap.tokens, tuple)
    job.append("G0 X2")
    assert len(snap.rows) == 1


def test_load_file(job, write_program):
    path = write_program(["G21", "G1 X5 Y5 F500", "M2"])
    summary = job.load_file(str(path))
    assert summary.name == str(path)
    assert summary.line_count == 3
    assert summary.max_values[0] == 5.0


def test_load_missing_file(job, tmp_path):
    with pytest.raises(GcodeFileError):
        job.load_file(str(tmp_path / "missing.nc"))


def test_mark_sent_and_ok(job):
    job.load_lines(["G0 X1", "G0 X2"])
    job.mark_sent(1)
    job.mark_ok(1)
    assert job.rows[1].sent and job.rows[1].ok
    assert not job.rows[0].sent
    with pytest.raises(InvalidRangeError):
        job.mark_sent(2)


def test_hash_ignores_line_endings():
    assert hash_lines(["G0 X1\r\n", "M30\n"]) == hash_lines(["G0 X1", "M30"])
    assert hash_lines(iter([])) is None
