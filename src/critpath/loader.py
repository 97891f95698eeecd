"""Project loading with config discovery and validation."""

from __future__ import annotations

from pathlib import Path

from . import context
from .exceptions import CircularDependencyError, MissingReferenceError, ValidationError
from .graph import IssueKind, detect_cycles, validate
from .models import Project
from .parser import ProjectParser
from .project_config import CONFIG_FILENAME, ProjectConfig, load_project_config


def discover_config(
    project_path: Path,
    config_path: Path | None = None,
) -> ProjectConfig | None:
    """Discover project config from various locations.

    Search order:
    1. Explicit config_path argument
    2. Global context (set via CLI --config)
    3. project file directory / critpath_config.yaml
    4. Current directory / critpath_config.yaml
    """
    # 1. Explicit argument
    if config_path and config_path.exists():
        return load_project_config(config_path)

    # 2. Global context
    ctx_config = context.get_config_path()
    if ctx_config and ctx_config.exists():
        return load_project_config(ctx_config)

    # 3. Project file directory
    dir_config = Path(project_path).parent / CONFIG_FILENAME
    if dir_config.exists():
        return load_project_config(dir_config)

    # 4. Current directory
    cwd_config = Path(CONFIG_FILENAME)
    if cwd_config.exists():
        return load_project_config(cwd_config)

    return None


def load_project(
    path: Path | str,
    config: ProjectConfig | None = None,
    *,
    check_cycles: bool = True,
) -> Project:
    """Parse and validate a project file.

    Args:
        path: Path to the project YAML file
        config: Optional config whose calendars are checked against task references
        check_cycles: Raise on dependency cycles (disable to inspect them)

    Returns:
        Validated Project

    Raises:
        ParseError: If the file cannot be read or has the wrong structure
        MissingReferenceError: If links only fail on unknown task ids
        ValidationError: For any other validation issue
        CircularDependencyError: If check_cycles is set and a cycle exists
    """
    project = ProjectParser().parse_file(Path(path))
    validate_project(project, config, check_cycles=check_cycles)
    return project


def validate_project(
    project: Project,
    config: ProjectConfig | None = None,
    *,
    check_cycles: bool = True,
) -> None:
    """Raise on the first category of problem found in a project."""
    calendars = config.calendars if config else {}
    issues = validate(project.tasks, project.links, calendars)
    if issues:
        message = "Invalid project:\n" + "\n".join(f"  - {issue.message}" for issue in issues)
        if all(issue.kind is IssueKind.MISSING_REFERENCE for issue in issues):
            raise MissingReferenceError(message, issues)
        raise ValidationError(message, issues)

    if check_cycles:
        cycles = detect_cycles(project.links)
        if cycles:
            described = "; ".join(" -> ".join(cycle) for cycle in cycles)
            raise CircularDependencyError(f"Circular dependency detected: {described}", cycles)
