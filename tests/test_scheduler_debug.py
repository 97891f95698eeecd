"""Tests for scheduler and leveling output at different verbosity levels."""

from datetime import date
from io import StringIO

from critpath.calendar import Calendar
from critpath.calendar_exceptions import add_exception, create_exception
from critpath.leveling import LevelingService
from critpath.logger import (
    changes_enabled,
    checks_enabled,
    debug_enabled,
    is_silent,
    reset_logger,
    setup_logger,
)
from critpath.resources import Resource
from critpath.scheduler import SchedulingConfig, schedule
from tests.conftest import MONDAY, link, task


def run_chain(verbosity: int) -> str:
    output_stream = StringIO()
    setup_logger(verbosity, stream=output_stream)
    try:
        schedule(
            [task("A", 2), task("B", 1)],
            [link("A", "B")],
            config=SchedulingConfig(project_start=MONDAY),
        )
        return output_stream.getvalue()
    finally:
        reset_logger()


def test_verbosity_0_silent():
    """Test that verbosity 0 produces no output."""
    assert run_chain(0) == ""


def test_verbosity_0_hides_warnings():
    """Weekend-start warnings are returned on the result, not logged, at verbosity 0."""
    output_stream = StringIO()
    setup_logger(0, stream=output_stream)
    try:
        result = schedule(
            [task("A", 1, start=date(2025, 1, 11))],
            [],
            config=SchedulingConfig(project_start=MONDAY),
        )
        output = output_stream.getvalue()
    finally:
        reset_logger()

    assert output == ""
    assert len(result.warnings) == 1


def test_verbosity_1_shows_summary():
    """Test that verbosity 1 shows the schedule summary only."""
    output = run_chain(1)

    assert "Scheduled 2 task(s), 2 critical" in output
    assert "Forward:" not in output
    assert "Backward:" not in output


def test_verbosity_1_shows_warnings():
    """Test that verbosity 1 logs schedule warnings."""
    output_stream = StringIO()
    setup_logger(1, stream=output_stream)
    try:
        schedule(
            [task("A", 1, start=date(2025, 1, 11))],
            [],
            config=SchedulingConfig(project_start=MONDAY),
        )
        output = output_stream.getvalue()
    finally:
        reset_logger()

    assert "Task 'A': 2025-01-11 is not a working day, starting 2025-01-13" in output


def test_verbosity_2_shows_pass_results():
    """Test that verbosity 2 shows per-task forward and backward dates."""
    output = run_chain(2)

    assert "Forward: A ES=2025-01-06 EF=2025-01-07" in output
    assert "Forward: B ES=2025-01-08 EF=2025-01-08" in output
    assert "Backward: A LS=2025-01-06 LF=2025-01-07" in output
    # Link candidates are debug detail
    assert "start >=" not in output


def test_verbosity_3_shows_link_candidates():
    """Test that verbosity 3 shows each link's candidate dates."""
    output = run_chain(3)

    assert "A -FS-> B: start >= 2025-01-08" in output
    assert "A -FS-> B: latest start <= 2025-01-06" in output
    assert "A: TF=0 FF=0" in output


def test_leveling_output():
    """Shifts are logged at verbosity 1, conflict counts at verbosity 2."""
    links = [link("L", "M"), link("M", "E"), link("S", "E")]
    tasks = schedule(
        [
            task("L", 2, resources={"alice": 200}),
            task("S", 1, resources={"alice": 100}),
            task("M", 3),
            task("E", 1),
        ],
        links,
        config=SchedulingConfig(project_start=MONDAY),
    ).tasks
    service = LevelingService([Resource(id="alice")])

    output_stream = StringIO()
    setup_logger(1, stream=output_stream)
    try:
        service.preview(tasks, links)
        changes_output = output_stream.getvalue()
    finally:
        reset_logger()

    assert "Shift S by 4 working day(s): 2025-01-06 -> 2025-01-10" in changes_output
    assert "over-allocation(s) detected" not in changes_output

    output_stream = StringIO()
    setup_logger(2, stream=output_stream)
    try:
        service.preview(tasks, links)
        checks_output = output_stream.getvalue()
    finally:
        reset_logger()

    assert "Leveling: 1 over-allocation(s) detected" in checks_output


def test_calendar_changes_logged():
    """Test that calendar edits are logged at verbosity 1."""
    output_stream = StringIO()
    setup_logger(1, stream=output_stream)
    try:
        add_exception(Calendar(), create_exception(MONDAY, "holiday"))
        output = output_stream.getvalue()
    finally:
        reset_logger()

    assert "Calendar 'global': adding holiday exception on 2025-01-06" in output


def test_level_helpers():
    """Test the level check helpers at each verbosity."""
    setup_logger(0)
    assert is_silent()
    assert not changes_enabled()

    setup_logger(2)
    assert changes_enabled()
    assert checks_enabled()
    assert not debug_enabled()

    setup_logger(3)
    assert debug_enabled()
    reset_logger()
    assert is_silent()
