"""Tests for critpath_config.yaml loading and discovery."""

from datetime import date
from pathlib import Path

import pytest

from critpath import context
from critpath.calendar import ExceptionType
from critpath.loader import discover_config
from critpath.project_config import CONFIG_FILENAME, load_project_config
from critpath.scheduler import TerminalAnchor

FULL_CONFIG = """
calendar:
  name: Site A
  holidays: [2025-12-25, 2025-12-26]
  exceptions:
    - date: 2025-01-11
      isWorkingDay: true
      workingHours: 6
      reason: Catch-up Saturday
calendars:
  night_shift:
    name: Night shift
    working_days: {saturday: true, sunday: false}
resources:
  - id: alice
    name: Alice
    capacity: 100
  - id: crane
    capacity: 1
scheduler:
  project_start: 2025-01-06
  terminal_anchor: project_finish
  finish_anchored_free_float: true
  leveling:
    max_shift_days: 3
"""


def write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadProjectConfig:
    """Tests for load_project_config()."""

    def test_full_config(self, tmp_path: Path) -> None:
        """Test loading calendars, resources and scheduler settings from one file."""
        config = load_project_config(write(tmp_path / CONFIG_FILENAME, FULL_CONFIG))

        assert config.calendar.id == "global"
        assert config.calendar.name == "Site A"
        assert config.calendar.is_holiday(date(2025, 12, 25))
        assert config.calendar.is_working_day(date(2025, 1, 11))
        assert config.calendar.working_hours(date(2025, 1, 11)) == 6.0

        night = config.calendars["night_shift"]
        assert night.id == "night_shift"
        assert night.is_working_day(date(2025, 1, 11))

        assert [r.id for r in config.resources.resources] == ["alice", "crane"]
        assert config.resources.capacities()["crane"] == 1.0

        assert config.scheduler.project_start == date(2025, 1, 6)
        assert config.scheduler.terminal_anchor is TerminalAnchor.PROJECT_FINISH
        assert config.scheduler.finish_anchored_free_float
        assert config.scheduler.leveling.max_shift_days == 3

    def test_defaults_for_missing_sections(self, tmp_path: Path) -> None:
        """Test the defaults used when sections are missing."""
        config = load_project_config(write(tmp_path / "c.yaml", "resources: []\n"))
        assert config.calendar.id == "global"
        assert config.calendar.name == "Global Calendar"
        assert config.calendars == {}
        assert config.resources.resources == []
        assert config.scheduler.project_start is None

    def test_exceptions_file_relative_to_config(self, tmp_path: Path) -> None:
        """Test that an exceptions file is found beside the config and merged."""
        write(
            tmp_path / "shutdowns.csv",
            "Date,Type,Reason\n2025-08-04,site_shutdown,Summer\n2025-08-05,site_shutdown,Summer\n",
        )
        config = load_project_config(
            write(
                tmp_path / CONFIG_FILENAME,
                "calendar:\n"
                "  exceptions:\n"
                "    - {date: 2025-01-02, type: holiday}\n"
                "  exceptions_file: shutdowns.csv\n",
            )
        )
        exceptions = config.calendar.exceptions
        assert [e.date for e in exceptions] == [
            date(2025, 1, 2),
            date(2025, 8, 4),
            date(2025, 8, 5),
        ]
        assert exceptions[1].type is ExceptionType.SITE_SHUTDOWN

    def test_missing_exceptions_file(self, tmp_path: Path) -> None:
        """Test that a missing exceptions file raises FileNotFoundError."""
        path = write(tmp_path / CONFIG_FILENAME, "calendar:\n  exceptions_file: nope.ics\n")
        with pytest.raises(FileNotFoundError, match="Exceptions file not found"):
            load_project_config(path)

    def test_invalid_exceptions_file(self, tmp_path: Path) -> None:
        """Test that an unparseable exceptions file raises ValueError."""
        write(tmp_path / "bad.json", "[{")
        path = write(tmp_path / CONFIG_FILENAME, "calendar:\n  exceptions_file: bad.json\n")
        with pytest.raises(ValueError, match="Invalid exceptions file"):
            load_project_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_project_config(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test that an empty config file raises ValueError."""
        with pytest.raises(ValueError, match="Empty configuration file"):
            load_project_config(write(tmp_path / "c.yaml", ""))

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        """Test that a YAML list at the root raises ValueError."""
        with pytest.raises(ValueError, match="mapping at the root"):
            load_project_config(write(tmp_path / "c.yaml", "- a\n- b\n"))

    def test_calendar_must_be_mapping(self, tmp_path: Path) -> None:
        """Test that a scalar calendar section raises ValueError."""
        with pytest.raises(ValueError, match="must be a mapping"):
            load_project_config(write(tmp_path / "c.yaml", "calendar: weekdays\n"))

    def test_invalid_values_rejected(self, tmp_path: Path) -> None:
        """Test that invalid field values raise ValueError."""
        path = write(tmp_path / "c.yaml", "resources:\n  - {id: alice, capacity: -1}\n")
        with pytest.raises(ValueError):
            load_project_config(path)


class TestDiscoverConfig:
    """Tests for discover_config() search order."""

    def test_explicit_path_wins(self, tmp_path: Path) -> None:
        """Test that an explicit path beats a config beside the project."""
        explicit = write(tmp_path / "explicit.yaml", "calendar: {name: Explicit}\n")
        write(tmp_path / CONFIG_FILENAME, "calendar: {name: Beside}\n")
        config = discover_config(tmp_path / "project.yaml", explicit)
        assert config is not None
        assert config.calendar.name == "Explicit"

    def test_context_path(self, tmp_path: Path) -> None:
        """Test that the --config path from the CLI context comes next."""
        context.set_config_path(write(tmp_path / "ctx.yaml", "calendar: {name: Context}\n"))
        write(tmp_path / CONFIG_FILENAME, "calendar: {name: Beside}\n")
        config = discover_config(tmp_path / "project.yaml")
        assert config is not None
        assert config.calendar.name == "Context"

    def test_beside_project_file(self, tmp_path: Path) -> None:
        """Test that a config beside the project file is found."""
        write(tmp_path / CONFIG_FILENAME, "calendar: {name: Beside}\n")
        config = discover_config(tmp_path / "project.yaml")
        assert config is not None
        assert config.calendar.name == "Beside"

    def test_current_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the current directory is searched last."""
        (tmp_path / "cwd").mkdir()
        (tmp_path / "project").mkdir()
        write(tmp_path / "cwd" / CONFIG_FILENAME, "calendar: {name: Cwd}\n")
        monkeypatch.chdir(tmp_path / "cwd")
        config = discover_config(tmp_path / "project" / "project.yaml")
        assert config is not None
        assert config.calendar.name == "Cwd"

    def test_nothing_found(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that discovery returns None when no config exists."""
        monkeypatch.chdir(tmp_path)
        assert discover_config(tmp_path / "project.yaml") is None
