"""Tests for the critical-path scheduler."""

from datetime import date
from typing import Any

import pytest

from critpath.calendar import Calendar, WorkingDays, add_working_units
from critpath.exceptions import (
    CalendarConfigurationError,
    CircularDependencyError,
    MissingReferenceError,
    ValidationError,
)
from critpath.models import Link, LinkType, Task
from critpath.scheduler import (
    CriticalPathScheduler,
    ErrorKind,
    SchedulingConfig,
    TerminalAnchor,
    schedule,
)
from tests.conftest import MONDAY, by_id, link, task


def d(day: int) -> date:
    """January 2025 date."""
    return date(2025, 1, day)


def run(
    tasks: list[Task], links: list[Link], config: SchedulingConfig, **kwargs: Any
) -> dict[str, Task]:
    """Schedule and index the result, failing the test on any error."""
    result = schedule(tasks, links, config=config, **kwargs)
    assert result.success, result.errors
    return by_id(result.tasks)


class TestForwardPass:
    """Tests for earliest dates."""

    def test_fs_chain(self, config: SchedulingConfig) -> None:
        """A(2) -> B(3) -> C(1) starting Monday runs across the weekend."""
        tasks = run(
            [task("A", 2), task("B", 3), task("C", 1)],
            [link("A", "B"), link("B", "C")],
            config,
        )
        assert (tasks["A"].earliest_start, tasks["A"].earliest_finish) == (d(6), d(7))
        assert (tasks["B"].earliest_start, tasks["B"].earliest_finish) == (d(8), d(10))
        assert (tasks["C"].earliest_start, tasks["C"].earliest_finish) == (d(13), d(13))

    def test_fs_lag(self, config: SchedulingConfig) -> None:
        """Test that an FS lag delays the successor and leaves the predecessor alone."""
        tasks = run([task("A", 2), task("B", 3)], [link("A", "B", lag=2)], config)
        assert (tasks["A"].earliest_start, tasks["A"].earliest_finish) == (d(6), d(7))
        assert tasks["B"].earliest_start == d(10)
        assert tasks["B"].earliest_finish == d(14)

    def test_fs_negative_lag_overlaps(self, config: SchedulingConfig) -> None:
        """Test that a negative FS lag lets the successor overlap its predecessor."""
        tasks = run([task("A", 3), task("B", 1)], [link("A", "B", lag=-1)], config)
        assert tasks["B"].earliest_start == d(8)

    def test_ss_lag(self, config: SchedulingConfig) -> None:
        """Test that an SS lag counts from the predecessor start whatever its duration."""
        tasks = run([task("A", 4), task("B", 3)], [link("A", "B", LinkType.SS, 1)], config)
        assert tasks["A"].earliest_finish == d(9)
        assert tasks["B"].earliest_start == d(7)
        assert tasks["B"].earliest_finish == d(9)

    def test_ff_aligns_finishes(self, config: SchedulingConfig) -> None:
        """Test that an FF link with no lag aligns the two finishes."""
        tasks = run([task("A", 3), task("B", 2)], [link("A", "B", LinkType.FF)], config)
        assert tasks["B"].earliest_start == d(7)
        assert tasks["B"].earliest_finish == tasks["A"].earliest_finish == d(8)

    def test_sf_lag(self, config: SchedulingConfig) -> None:
        """Test that an SF lag sets the successor finish from the predecessor start."""
        tasks = run([task("A", 2), task("B", 2)], [link("A", "B", "SF", 3)], config)
        assert tasks["B"].earliest_finish == d(9)

    def test_latest_predecessor_wins(self, config: SchedulingConfig) -> None:
        """Test that the latest predecessor sets the start."""
        tasks = run(
            [task("A", 1), task("B", 4), task("C", 1)],
            [link("A", "C"), link("B", "C")],
            config,
        )
        assert tasks["C"].earliest_start == d(10)

    def test_own_start_for_root_task(self, config: SchedulingConfig) -> None:
        """Test that a root task starts on its own start date."""
        tasks = run([task("A", 1, start=d(8))], [], config)
        assert tasks["A"].earliest_start == d(8)

    def test_own_start_bounds_linked_task(self, config: SchedulingConfig) -> None:
        """Test that a linked task's own start acts as a start-no-earlier-than bound."""
        tasks = run([task("A", 1), task("B", 1, start=d(10))], [link("A", "B")], config)
        assert tasks["B"].earliest_start == d(10)
        assert tasks["A"].total_float == 3

    def test_weekend_start_snaps_with_warning(self, config: SchedulingConfig) -> None:
        """Test that a weekend start moves to Monday with a warning."""
        result = schedule([task("A", 1, start=d(11))], [], config=config)
        assert result.task("A").earliest_start == d(13)
        assert result.warnings == ["Task 'A': 2025-01-11 is not a working day, starting 2025-01-13"]

    def test_holiday_extends_duration(self, config: SchedulingConfig) -> None:
        """Test that a holiday inside a task pushes its finish out."""
        tasks = run([task("A", 3)], [], config, calendar=Calendar(holidays=[d(8)]))
        assert tasks["A"].earliest_finish == d(9)

    def test_task_calendar_governs_own_dates(self, config: SchedulingConfig) -> None:
        """Test that a task's own calendar sets its dates."""
        six_day = Calendar(id="six", name="Six day", working_days=WorkingDays(saturday=True))
        tasks = run(
            [task("A", 1, start=d(9)), task("B", 2, calendar_ref="six")],
            [link("A", "B")],
            config,
            calendars={"six": six_day},
        )
        assert tasks["B"].earliest_start == d(10)
        assert tasks["B"].earliest_finish == d(11)
        assert tasks["A"].total_float == 0

    def test_project_start_defaults_to_today(self) -> None:
        """Test that the project starts today when no start is configured."""
        result = schedule([task("A", 1)], [])
        start = result.task("A").earliest_start
        assert start is not None
        assert start >= date.today()  # noqa: DTZ011


class TestBackwardPassAndFloat:
    """Tests for latest dates, float and criticality."""

    def test_chain_is_critical(self, config: SchedulingConfig) -> None:
        """Test that every task in a single FS chain is critical."""
        tasks = run(
            [task("A", 2), task("B", 3), task("C", 1)],
            [link("A", "B"), link("B", "C")],
            config,
        )
        for t in tasks.values():
            assert t.total_float == 0
            assert t.free_float == 0
            assert t.is_critical
            assert t.latest_start == t.earliest_start
            assert t.latest_finish == t.earliest_finish

    def test_parallel_branch_has_float(self, config: SchedulingConfig) -> None:
        """Test that the shorter parallel branch gets float."""
        tasks = run(
            [task("A", 2), task("B", 3), task("C", 1), task("D", 1)],
            [link("A", "B"), link("A", "C"), link("B", "D"), link("C", "D")],
            config,
        )
        assert tasks["D"].earliest_start == d(13)
        assert tasks["C"].latest_start == d(10)
        assert tasks["C"].total_float == 2
        assert tasks["C"].free_float == 2
        assert not tasks["C"].is_critical
        assert [t.id for t in tasks.values() if t.is_critical] == ["A", "B", "D"]

    def test_ff_backward(self, config: SchedulingConfig) -> None:
        """Test that an FF link bounds the predecessor finish."""
        tasks = run([task("A", 3), task("B", 2)], [link("A", "B", "FF")], config)
        assert tasks["A"].latest_finish == d(8)
        assert tasks["A"].total_float == 0

    def test_ss_lag_backward(self, finish_anchored: SchedulingConfig) -> None:
        """Test that an SS lag bounds the predecessor start from the successor start."""
        tasks = run(
            [task("A", 2), task("B", 3), task("X", 8)],
            [link("A", "B", "SS", 1)],
            finish_anchored,
        )
        assert (tasks["B"].latest_start, tasks["B"].latest_finish) == (d(13), d(15))
        assert tasks["B"].total_float == 4
        assert (tasks["A"].latest_start, tasks["A"].latest_finish) == (d(10), d(13))
        assert tasks["A"].total_float == 4

    def test_ss_negative_lag_backward(self, finish_anchored: SchedulingConfig) -> None:
        """Test that a negative SS lag lets the predecessor start after its successor."""
        tasks = run(
            [task("A", 2, start=d(8)), task("B", 3), task("X", 8)],
            [link("A", "B", "SS", -1)],
            finish_anchored,
        )
        assert tasks["B"].earliest_start == d(7)
        assert tasks["B"].latest_start == d(13)
        assert tasks["B"].total_float == 4
        assert (tasks["A"].latest_start, tasks["A"].latest_finish) == (d(14), d(15))
        assert tasks["A"].total_float == 4

    def test_sf_lag_backward(self, finish_anchored: SchedulingConfig) -> None:
        """Test that an SF lag bounds the predecessor start from the successor finish."""
        tasks = run(
            [task("A", 2), task("B", 2), task("X", 8)],
            [link("A", "B", "SF", 3)],
            finish_anchored,
        )
        assert (tasks["B"].earliest_start, tasks["B"].earliest_finish) == (d(8), d(9))
        assert (tasks["B"].latest_start, tasks["B"].latest_finish) == (d(14), d(15))
        assert tasks["B"].total_float == 4
        assert (tasks["A"].latest_start, tasks["A"].latest_finish) == (d(10), d(13))
        assert tasks["A"].total_float == 4

    def test_own_finish_anchor(self, config: SchedulingConfig) -> None:
        """Test that terminal tasks anchor at their own finish by default."""
        tasks = run([task("A", 1), task("B", 3)], [], config)
        assert tasks["A"].total_float == 0
        assert tasks["B"].total_float == 0

    def test_project_finish_anchor(self) -> None:
        """Test that terminal tasks can anchor at the project finish."""
        config = SchedulingConfig(
            project_start=MONDAY, terminal_anchor=TerminalAnchor.PROJECT_FINISH
        )
        tasks = run([task("A", 1), task("B", 3)], [], config)
        assert tasks["A"].latest_finish == d(8)
        assert tasks["A"].total_float == 2
        assert tasks["A"].free_float == 2
        assert tasks["B"].total_float == 0

    def test_latest_start_never_before_earliest(self, config: SchedulingConfig) -> None:
        """Test that the latest start is clamped to the earliest start."""
        tasks = run(
            [task("A", 1), task("B", 1, start=d(10)), task("C", 2)],
            [link("A", "B"), link("A", "C"), link("C", "B", "SS")],
            config,
        )
        for t in tasks.values():
            assert t.latest_start is not None and t.earliest_start is not None
            assert t.latest_start >= t.earliest_start

    def test_free_float_start_anchored_by_default(self) -> None:
        """Test that free float is measured from successor starts by default."""
        config = SchedulingConfig(project_start=MONDAY)
        tasks = run(
            [task("A", 1), task("X", 3), task("B", 2)],
            [link("A", "B", "FF"), link("X", "B")],
            config,
        )
        assert tasks["B"].earliest_start == d(9)
        assert tasks["A"].total_float == 4
        assert tasks["A"].free_float == 3

    def test_free_float_finish_anchored(self) -> None:
        """Test that free float can be measured at successor finishes."""
        config = SchedulingConfig(project_start=MONDAY, finish_anchored_free_float=True)
        tasks = run(
            [task("A", 1), task("X", 3), task("B", 2)],
            [link("A", "B", "FF"), link("X", "B")],
            config,
        )
        assert tasks["A"].free_float == 4

    def test_free_float_never_exceeds_total(self, config: SchedulingConfig) -> None:
        """Test that free float stays between zero and total float."""
        tasks = run(
            [task("A", 2), task("B", 5), task("C", 1), task("D", 2), task("E", 1)],
            [
                link("A", "B"),
                link("A", "C", "SS", 1),
                link("C", "D"),
                link("B", "E"),
                link("D", "E", "FF", 1),
            ],
            config,
        )
        for t in tasks.values():
            assert t.free_float is not None and t.total_float is not None
            assert 0 <= t.free_float <= t.total_float


class TestScheduleResult:
    """Tests for outputs, purity and error reporting."""

    def test_durations_are_consistent(self, config: SchedulingConfig, calendar: Calendar) -> None:
        """Test that finishes match starts plus duration in working days."""
        tasks = run(
            [task("A", 4), task("B", 2), task("C", 3)],
            [link("A", "B", "SS", 1), link("B", "C", lag=2)],
            config,
        )
        for t in tasks.values():
            assert t.earliest_start is not None and t.latest_start is not None
            span = t.duration - 1
            assert t.earliest_finish == add_working_units(t.earliest_start, span, calendar)
            assert t.latest_finish == add_working_units(t.latest_start, span, calendar)

    def test_input_not_mutated(self, config: SchedulingConfig) -> None:
        """Test that scheduling returns new tasks and leaves the input alone."""
        original = [task("A", 2), task("B", 1)]
        result = schedule(original, [link("A", "B")], config=config)
        assert result.success
        assert original[0].earliest_start is None
        assert result.tasks[0] is not original[0]

    def test_rescheduling_is_idempotent(self, config: SchedulingConfig) -> None:
        """Test that scheduling a schedule's output gives the same dates."""
        links = [link("A", "B"), link("A", "C", "SS", 1), link("B", "D"), link("C", "D")]
        tasks = [task("A", 2), task("B", 3), task("C", 1), task("D", 1)]
        first = schedule(tasks, links, config=config)
        second = schedule(first.tasks, links, config=config)
        assert second.tasks == first.tasks

    def test_output_preserves_input_order(self, config: SchedulingConfig) -> None:
        """Test that tasks come back in input order."""
        result = schedule([task("C"), task("B"), task("A")], [link("A", "B")], config=config)
        assert [t.id for t in result.tasks] == ["C", "B", "A"]

    def test_task_lookup(self, config: SchedulingConfig) -> None:
        """Test that looking up an unknown task raises KeyError."""
        result = schedule([task("A")], [], config=config)
        with pytest.raises(KeyError):
            result.task("missing")

    def test_cycle_returns_input_unchanged(self, config: SchedulingConfig) -> None:
        """Test that a cycle returns the input tasks and reports the cycle."""
        original = [task("A"), task("B"), task("C")]
        result = schedule(
            original, [link("A", "B"), link("B", "C"), link("C", "A")], config=config
        )
        assert not result.success
        assert result.tasks == original
        assert result.tasks[0] is original[0]
        assert result.cycles == [["A", "B", "C", "A"]]
        assert result.errors[0].kind is ErrorKind.CIRCULAR_DEPENDENCY
        assert result.errors[0].message == "Circular dependency: A -> B -> C -> A"

    def test_cycle_raise_for_errors(self, config: SchedulingConfig) -> None:
        """Test that raise_for_errors() raises CircularDependencyError for a cycle."""
        result = schedule([task("A"), task("B")], [link("A", "B"), link("B", "A")], config=config)
        with pytest.raises(CircularDependencyError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.cycles == [["A", "B", "A"]]

    def test_missing_reference(self, config: SchedulingConfig) -> None:
        """Test that a missing reference raises MissingReferenceError."""
        result = schedule([task("A")], [link("A", "ghost")], config=config)
        assert not result.success
        assert result.errors[0].kind is ErrorKind.VALIDATION
        with pytest.raises(MissingReferenceError, match="unknown successor 'ghost'"):
            result.raise_for_errors()

    def test_mixed_validation_errors(self, config: SchedulingConfig) -> None:
        """Test that mixed issues raise a plain ValidationError."""
        result = schedule(
            [task("A"), task("B")], [link("A", "ghost"), link("A", "B", "XY")], config=config
        )
        with pytest.raises(ValidationError) as exc_info:
            result.raise_for_errors()
        assert not isinstance(exc_info.value, MissingReferenceError)
        assert len(exc_info.value.issues) == 2

    def test_validation_errors_suppress_cycle_report(self, config: SchedulingConfig) -> None:
        """Test that cycles are not reported while validation fails."""
        result = schedule(
            [task("A"), task("B")],
            [link("A", "B"), link("B", "A"), link("A", "ghost")],
            config=config,
        )
        assert result.cycles == []
        assert [e.kind for e in result.errors] == [ErrorKind.VALIDATION]

    def test_raise_for_errors_noop_on_success(self, config: SchedulingConfig) -> None:
        """Test that raise_for_errors() does nothing on success."""
        schedule([task("A")], [], config=config).raise_for_errors()

    def test_calendar_without_working_days_raises(self, config: SchedulingConfig) -> None:
        """Test that a calendar with no working days raises."""
        closed = Calendar(
            working_days=WorkingDays(
                monday=False, tuesday=False, wednesday=False, thursday=False, friday=False
            )
        )
        with pytest.raises(CalendarConfigurationError, match="has no working days"):
            schedule([task("A")], [], calendar=closed, config=config)

    def test_scheduler_is_reusable(self, config: SchedulingConfig) -> None:
        """Test that one scheduler instance can schedule several projects."""
        scheduler = CriticalPathScheduler(config=config)
        first = scheduler.schedule([task("A", 2)], [])
        second = scheduler.schedule([task("X", 1)], [])
        assert first.task("A").earliest_finish == d(7)
        assert second.task("X").earliest_finish == d(6)
