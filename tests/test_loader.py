import queue

from simple_gcode.gcode_job import GcodeJob
from simple_gcode.gcode_loader import JobLoader


def collect(q):
    events = []
    while True:
        try:
            events.append(q.get_nowait())
        except queue.Empty:
            return events


def finished(events, token):
    return [e for e in events if e[1] == token and e[0] != "job_load_progress"]


def test_load_posts_finished_job(write_program):
    path = str(write_program(["G21 G90", "G1 X10 Y5 F300", "G1 X-3 Y20", "M30"]))
    q = queue.Queue()
    loader = JobLoader(q)
    token = loader.load(path)
    loader.join(timeout=10)

    assert not loader.is_loading()
    assert loader.is_current(token)
    (event,) = finished(collect(q), token)
    kind, _, event_path, job = event
    assert kind == "job_loaded"
    assert event_path == path
    assert isinstance(job, GcodeJob)
    assert len(job.rows) == 4
    assert job.snapshot().name == path
    assert job.bounding_box.axis("X") == (-3.0, 10.0)


def test_load_error_is_reported(write_program):
    path = str(write_program(["G0 X1", "G0 G1 X2"]))
    q = queue.Queue()
    loader = JobLoader(q)
    token = loader.load(path)
    loader.join(timeout=10)

    (event,) = finished(collect(q), token)
    assert event[0] == "job_load_error"
    assert "Line 2" in event[3]


def test_missing_file_is_reported(tmp_path):
    q = queue.Queue()
    loader = JobLoader(q)
    token = loader.load(str(tmp_path / "nope.nc"))
    loader.join(timeout=10)

    (event,) = finished(collect(q), token)
    assert event[0] == "job_load_error"


def test_continue_on_error_skips_bad_lines(write_program):
    path = str(write_program(["G0 X1", "G0 G1 X2", "G0 X3"]))
    q = queue.Queue()
    loader = JobLoader(q, continue_on_error=True)
    token = loader.load(path)
    loader.join(timeout=10)

    (event,) = finished(collect(q), token)
    assert event[0] == "job_loaded"
    assert event[3].skipped_lines == 1


def test_progress_is_posted_for_long_files(write_program):
    path = str(write_program([f"G1 X{i} F100" for i in range(1200)]))
    q = queue.Queue()
    loader = JobLoader(q)
    token = loader.load(path)
    loader.join(timeout=30)

    events = collect(q)
    progress = [e for e in events if e[0] == "job_load_progress" and e[1] == token]
    assert progress
    assert progress[-1][3] <= 1200
    assert finished(events, token)[0][0] == "job_loaded"


def test_new_load_supersedes_previous(write_program):
    first = str(write_program(["G0 X1"], name="first.nc"))
    second = str(write_program(["G0 X2"], name="second.nc"))
    q = queue.Queue()
    loader = JobLoader(q)
    token1 = loader.load(first)
    token2 = loader.load(second)
    loader.join(timeout=10)

    assert token2 == token1 + 1
    assert not loader.is_current(token1)
    events = collect(q)
    (event,) = finished(events, token2)
    assert event[0] == "job_loaded"
    assert event[2] == second


def test_cancel_ends_with_cancel_or_finished_job(write_program):
    path = str(write_program([f"G1 X{i}" for i in range(2000)]))
    q = queue.Queue()
    loader = JobLoader(q)
    token = loader.load(path)
    loader.cancel()
    loader.join(timeout=30)

    (event,) = finished(collect(q), token)
    assert event[0] in ("job_load_cancelled", "job_loaded")
