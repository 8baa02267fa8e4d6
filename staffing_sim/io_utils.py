from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import pandas as pd
from dateutil import parser as dateparser

from .engine import CompletedProject
from .models import Contributor, Project, SimulationConfig, Skill

_LOGGING_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _content_lines(text: str) -> Iterator[Tuple[int, List[str]]]:
    for number, raw in enumerate(text.splitlines(), start=1):
        parts = raw.split()
        if parts:
            yield number, parts


def _parse_int(value: str, field_name: str, line_no: int) -> int:
    try:
        parsed = int(value, 10)
    except ValueError as exc:
        raise ValueError(f"line {line_no}: invalid integer for {field_name}: {value!r}") from exc
    if parsed < 0:
        raise ValueError(f"line {line_no}: {field_name} must not be negative")
    return parsed


def _expect_fields(parts: List[str], count: int, what: str, line_no: int) -> None:
    if len(parts) != count:
        raise ValueError(f"line {line_no}: expected {count} fields for {what}, got {len(parts)}")


def _next_line(lines: Iterator[Tuple[int, List[str]]], what: str) -> Tuple[int, List[str]]:
    try:
        return next(lines)
    except StopIteration:
        raise ValueError(f"unexpected end of input while reading {what}") from None


def _parse_skill(lines: Iterator[Tuple[int, List[str]]], owner: str) -> Skill:
    line_no, parts = _next_line(lines, f"skills of {owner}")
    _expect_fields(parts, 2, f"a skill of {owner}", line_no)
    return Skill(parts[0], _parse_int(parts[1], "skill level", line_no))


def parse_input(text: str) -> Tuple[List[Contributor], List[Project]]:
    """Parse the contributor/project text format.

    Layout: a ``C P`` header, then ``C`` contributor blocks (``name N`` and N
    ``skill level`` lines), then ``P`` project blocks (``name duration score
    best_before R`` and R ``skill level`` lines). Blank lines are ignored.
    """
    lines = _content_lines(text)
    line_no, header = _next_line(lines, "header")
    _expect_fields(header, 2, "the header", line_no)
    contributor_count = _parse_int(header[0], "contributor count", line_no)
    project_count = _parse_int(header[1], "project count", line_no)

    contributors: List[Contributor] = []
    seen_contributors = set()
    for _ in range(contributor_count):
        line_no, parts = _next_line(lines, "contributors")
        _expect_fields(parts, 2, "a contributor", line_no)
        name = parts[0]
        if name in seen_contributors:
            raise ValueError(f"line {line_no}: duplicate contributor '{name}'")
        seen_contributors.add(name)
        contributor = Contributor(name)
        for _ in range(_parse_int(parts[1], "skill count", line_no)):
            skill = _parse_skill(lines, name)
            contributor.skills[skill.name] = skill
        contributors.append(contributor)

    projects: List[Project] = []
    seen_projects = set()
    for _ in range(project_count):
        line_no, parts = _next_line(lines, "projects")
        _expect_fields(parts, 5, "a project", line_no)
        name = parts[0]
        if name in seen_projects:
            raise ValueError(f"line {line_no}: duplicate project '{name}'")
        seen_projects.add(name)
        project = Project(
            name=name,
            duration=_parse_int(parts[1], "duration", line_no),
            score=_parse_int(parts[2], "score", line_no),
            deadline_day=_parse_int(parts[3], "best before day", line_no),
        )
        for _ in range(_parse_int(parts[4], "role count", line_no)):
            required = _parse_skill(lines, name)
            project.add_role(required.name, required.level)
        projects.append(project)

    leftover = next(lines, None)
    if leftover is not None:
        raise ValueError(f"line {leftover[0]}: unexpected content after {project_count} projects")
    return contributors, projects


def load_input(path: str | Path) -> Tuple[List[Contributor], List[Project]]:
    return parse_input(Path(path).read_text(encoding="utf-8"))


def format_submission(completed: Sequence[CompletedProject]) -> str:
    lines = [str(len(completed))]
    for item in completed:
        lines.append(item.name)
        lines.append(" ".join(item.contributors))
    return "\n".join(lines) + "\n"


def write_submission(path: str | Path, completed: Sequence[CompletedProject]) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(format_submission(completed), encoding="utf-8")
    return target


def _parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def load_config(path: str | Path) -> SimulationConfig:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("config file must be a JSON object")

    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str) or logging_level.upper() not in _LOGGING_LEVELS:
        raise ValueError(f"logging_level must be one of {', '.join(sorted(_LOGGING_LEVELS))}")

    max_days = data.get("max_days")
    if max_days is not None:
        if isinstance(max_days, bool) or not isinstance(max_days, int) or max_days <= 0:
            raise ValueError("max_days must be null or a positive integer")

    calendar_start = _parse_optional_date(data.get("calendar_start"), "calendar_start")

    narrate = data.get("narrate", True)
    if not isinstance(narrate, bool):
        raise ValueError("narrate must be a boolean")

    return SimulationConfig(
        logging_level=logging_level.upper(),
        max_days=max_days,
        calendar_start=calendar_start,
        narrate=narrate,
    )


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
