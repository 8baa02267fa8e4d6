from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
from dateutil.relativedelta import relativedelta

from .models import Contributor, Project, SimulationConfig, Skill

logger = logging.getLogger(__name__)

DATE_FMT = "%Y-%m-%d"

_TIMELINE_COLUMNS = [
    "name",
    "start_day",
    "end_day",
    "duration_days",
    "deadline_day",
    "score",
    "awarded_score",
    "contributors",
]


class SimulationLimitError(RuntimeError):
    def __init__(self, day: int, unfinished: Sequence[str]) -> None:
        names = ", ".join(unfinished) if unfinished else "none"
        super().__init__(f"simulation stopped at day ceiling {day}; unfinished projects: {names}")
        self.day = day
        self.unfinished = tuple(unfinished)


class SimulationObserver:
    """Receives state transitions from the day loop. Hooks do nothing by default."""

    def day_started(self, day: int) -> None:
        pass

    def contributor_assigned(self, day: int, contributor: Contributor, project: Project) -> None:
        pass

    def project_started(self, day: int, project: Project) -> None:
        pass

    def project_progressed(self, day: int, project: Project) -> None:
        pass

    def project_completed(self, day: int, project: Project) -> None:
        pass

    def contributor_released(self, day: int, contributor: Contributor, project: Project) -> None:
        pass

    def skill_levelled(self, day: int, contributor: Contributor, skill: Skill) -> None:
        pass

    def day_ended(self, day: int) -> None:
        pass


class LoggingObserver(SimulationObserver):
    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger

    def day_started(self, day: int) -> None:
        self.log.debug("Start day %d", day)

    def contributor_assigned(self, day: int, contributor: Contributor, project: Project) -> None:
        self.log.info("Contributor %s assigned to project %s", contributor.name, project.name)

    def project_started(self, day: int, project: Project) -> None:
        self.log.info("Project %s started on day %d", project.name, day)

    def project_progressed(self, day: int, project: Project) -> None:
        self.log.debug("Project %s progressed on day %d (%d left)", project.name, day, project.remaining_duration)

    def project_completed(self, day: int, project: Project) -> None:
        self.log.info("Project %s completed", project.name)

    def contributor_released(self, day: int, contributor: Contributor, project: Project) -> None:
        self.log.info("Contributor %s freed from %s", contributor.name, project.name)

    def skill_levelled(self, day: int, contributor: Contributor, skill: Skill) -> None:
        self.log.info("Contributor %s levelled up skill %s to level %d", contributor.name, skill.name, skill.level)

    def day_ended(self, day: int) -> None:
        self.log.debug("End day %d", day)


class RecordingObserver(SimulationObserver):
    """Keeps every transition as a tuple, mostly for tests."""

    def __init__(self) -> None:
        self.events: List[Tuple[object, ...]] = []

    def contributor_assigned(self, day: int, contributor: Contributor, project: Project) -> None:
        self.events.append(("assigned", day, contributor.name, project.name))

    def project_started(self, day: int, project: Project) -> None:
        self.events.append(("started", day, project.name))

    def project_progressed(self, day: int, project: Project) -> None:
        self.events.append(("progressed", day, project.name, project.remaining_duration))

    def project_completed(self, day: int, project: Project) -> None:
        self.events.append(("completed", day, project.name))

    def contributor_released(self, day: int, contributor: Contributor, project: Project) -> None:
        self.events.append(("released", day, contributor.name, project.name))

    def skill_levelled(self, day: int, contributor: Contributor, skill: Skill) -> None:
        self.events.append(("levelled", day, contributor.name, skill.name, skill.level))

    def of_kind(self, kind: str) -> List[Tuple[object, ...]]:
        return [event for event in self.events if event[0] == kind]


@dataclass(frozen=True)
class CompletedProject:
    name: str
    start_day: int
    duration: int
    deadline_day: int
    score: int
    contributors: Tuple[str, ...]

    @property
    def end_day(self) -> int:
        return self.start_day + self.duration

    @property
    def awarded_score(self) -> int:
        late_by = max(self.end_day - self.deadline_day, 0)
        return max(self.score - late_by, 0)

    @classmethod
    def from_project(cls, project: Project) -> "CompletedProject":
        if not project.is_completed or project.start_day is None:
            raise ValueError(f"project {project.name} has not completed")
        return cls(
            name=project.name,
            start_day=project.start_day,
            duration=project.duration,
            deadline_day=project.deadline_day,
            score=project.score,
            contributors=project.contributor_names(),
        )


@dataclass
class SimulationResult:
    completed: List[CompletedProject]
    days_simulated: int
    skipped: List[Dict[str, object]] = field(default_factory=list)

    @property
    def total_score(self) -> int:
        return sum(item.awarded_score for item in self.completed)


def order_by_deadline(projects: Sequence[Project]) -> List[Project]:
    """Candidacy order: ascending deadline, input order among ties."""
    return sorted(projects, key=lambda project: project.deadline_day)


def score_horizon(projects: Sequence[Project]) -> int:
    """Last day on which any project can still have a positive current score."""
    return max((project.deadline_day + project.score for project in projects), default=0)


def _start_roleless(day: int, projects: Sequence[Project], observer: SimulationObserver) -> None:
    for project in projects:
        if project.is_pending and not project.roles:
            project.start(day)
            observer.project_started(day, project)


def assignment_pass(
    day: int,
    contributors: Sequence[Contributor],
    projects: Sequence[Project],
    observer: SimulationObserver,
) -> None:
    _start_roleless(day, projects, observer)
    for contributor in contributors:
        if not contributor.is_free:
            continue
        for project in projects:
            if not project.is_pending:
                continue
            if project.try_accept(contributor):
                observer.contributor_assigned(day, contributor, project)
                if project.all_roles_filled():
                    project.start(day)
                    observer.project_started(day, project)
                break


def progress_pass(day: int, projects: Sequence[Project], observer: SimulationObserver) -> bool:
    """Advance active projects by one day; return True once nothing is worth pursuing."""
    all_done = True
    for project in projects:
        if not project.is_completed and project.current_score(day) > 0:
            all_done = False
        if not project.is_active or project.is_completed:
            continue
        released = project.advance_one_day()
        observer.project_progressed(day, project)
        if project.is_completed:
            observer.project_completed(day, project)
            for contributor, levelled in released:
                observer.contributor_released(day, contributor, project)
                if levelled is not None:
                    observer.skill_levelled(day, contributor, levelled)
    return all_done


def _describe_unfinished(project: Project) -> Dict[str, object]:
    open_roles = [f"{role.required.name}:{role.required.level}" for role in project.roles if not role.is_filled()]
    if project.is_active:
        reason = "still in progress when simulation stopped"
    else:
        reason = "never fully staffed"
    return {
        "name": project.name,
        "reason": reason,
        "detail": {
            "filled_roles": len(project.roles) - len(open_roles),
            "total_roles": len(project.roles),
            "open_roles": open_roles,
            "remaining_duration": project.remaining_duration,
        },
    }


def simulate(
    contributors: Sequence[Contributor],
    projects: Sequence[Project],
    config: Optional[SimulationConfig] = None,
    observer: Optional[SimulationObserver] = None,
) -> SimulationResult:
    """Run the day loop until no unfinished project has a positive current score.

    Contributors and projects are mutated in place. ``config.max_days`` is only
    a safety ceiling; reaching it raises ``SimulationLimitError``.
    """
    cfg = config or SimulationConfig()
    observer = observer if observer is not None else LoggingObserver()
    candidates = order_by_deadline(projects)

    day = 0
    all_done = False
    while not all_done:
        if cfg.max_days is not None and day >= cfg.max_days:
            raise SimulationLimitError(day, [p.name for p in candidates if not p.is_completed])
        observer.day_started(day)
        assignment_pass(day, contributors, candidates, observer)
        all_done = progress_pass(day, candidates, observer)
        observer.day_ended(day)
        day += 1

    finished = sorted(
        (project for project in candidates if project.is_completed),
        key=lambda project: project.start_day,
    )
    completed = [CompletedProject.from_project(project) for project in finished]
    skipped = [_describe_unfinished(project) for project in candidates if not project.is_completed]
    logger.info(
        "Simulation finished after %d days: %d completed, %d unfinished",
        day,
        len(completed),
        len(skipped),
    )
    return SimulationResult(completed=completed, days_simulated=day, skipped=skipped)


def timeline_frame(result: SimulationResult, config: Optional[SimulationConfig] = None) -> pd.DataFrame:
    cfg = config or SimulationConfig()
    rows: List[Dict[str, object]] = []
    for item in result.completed:
        row: Dict[str, object] = {
            "name": item.name,
            "start_day": item.start_day,
            "end_day": item.end_day,
            "duration_days": item.duration,
            "deadline_day": item.deadline_day,
            "score": item.score,
            "awarded_score": item.awarded_score,
            "contributors": " ".join(item.contributors),
        }
        if cfg.calendar_start is not None:
            row["start_date"] = (cfg.calendar_start + relativedelta(days=item.start_day)).strftime(DATE_FMT)
            row["end_date"] = (cfg.calendar_start + relativedelta(days=item.end_day)).strftime(DATE_FMT)
        rows.append(row)
    columns = list(_TIMELINE_COLUMNS)
    if cfg.calendar_start is not None:
        columns[3:3] = ["start_date", "end_date"]
    return pd.DataFrame(rows, columns=columns)


def skills_frame(contributors: Sequence[Contributor]) -> pd.DataFrame:
    rows = [
        {"contributor": contributor.name, "skill": skill.name, "level": skill.level}
        for contributor in contributors
        for skill in contributor.skills.values()
    ]
    return pd.DataFrame(rows, columns=["contributor", "skill", "level"])
