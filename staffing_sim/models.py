from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass
class Skill:
    name: str
    level: int


@dataclass(eq=False)
class Contributor:
    """Contributor roster entry; holds at most one active assignment."""

    name: str
    skills: Dict[str, Skill] = field(default_factory=dict)
    assignment: Optional["Project"] = field(default=None, repr=False)

    @property
    def is_free(self) -> bool:
        return self.assignment is None

    def skill(self, name: str) -> Skill:
        """Return the named skill, creating it at level 0 when missing.

        This is a mutating read: the created entry stays in ``skills``.
        """
        current = self.skills.get(name)
        if current is None:
            current = Skill(name, 0)
            self.skills[name] = current
        return current

    def meets_requirement(self, required: Skill) -> bool:
        return self.skill(required.name).level >= required.level

    def take_assignment(self, project: "Project") -> None:
        self.assignment = project

    def release(self, role: "Role") -> Optional[Skill]:
        """Free the contributor from ``role`` and grow the role's skill.

        The skill gains one level only if it did not already exceed the
        requirement. Returns the skill when it levelled up.
        """
        if self.assignment is None:
            return None
        self.assignment = None
        current = self.skill(role.required.name)
        if current.level <= role.required.level:
            current.level += 1
            return current
        return None


@dataclass(eq=False)
class Role:
    project: "Project" = field(repr=False)
    required: Skill
    contributor: Optional[Contributor] = field(default=None, repr=False)

    def is_filled(self) -> bool:
        return self.contributor is not None

    def try_fill(self, contributor: Contributor, has_mentor: bool) -> bool:
        if not contributor.meets_requirement(self.required) and not has_mentor:
            return False
        self.contributor = contributor
        contributor.take_assignment(self.project)
        return True


@dataclass(eq=False)
class Project:
    """Time-boxed project moving from pending to active to completed."""

    name: str
    duration: int
    score: int
    deadline_day: int
    roles: List[Role] = field(default_factory=list, repr=False)
    remaining_duration: int = field(init=False)
    is_active: bool = False
    is_completed: bool = False
    start_day: Optional[int] = None
    mentor_knowledge: Dict[str, int] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.remaining_duration = self.duration

    def add_role(self, skill_name: str, level: int) -> Role:
        role = Role(project=self, required=Skill(skill_name, level))
        self.roles.append(role)
        return role

    @property
    def is_pending(self) -> bool:
        return not self.is_active and not self.is_completed

    def all_roles_filled(self) -> bool:
        return all(role.is_filled() for role in self.roles)

    def has_mentor_for(self, role: Role) -> bool:
        return self.mentor_knowledge.get(role.required.name, -1) >= role.required.level

    def try_accept(self, contributor: Contributor) -> bool:
        for role in self.roles:
            if role.is_filled():
                continue
            if role.try_fill(contributor, self.has_mentor_for(role)):
                self._learn_from(contributor.skills.values())
                return True
        return False

    def _learn_from(self, skills: Iterable[Skill]) -> None:
        for skill in skills:
            best = self.mentor_knowledge.get(skill.name)
            if best is None or skill.level > best:
                self.mentor_knowledge[skill.name] = skill.level

    def start(self, day: int) -> None:
        if self.start_day is not None:
            raise RuntimeError(f"project {self.name} already started on day {self.start_day}")
        self.is_active = True
        self.start_day = day

    def advance_one_day(self) -> List[Tuple[Contributor, Optional[Skill]]]:
        """Spend one day of work; on the last day complete and free the team.

        Returns ``(contributor, levelled_skill)`` pairs for every release, in
        role order. Roles keep their contributor for reporting.
        """
        self.remaining_duration -= 1
        if self.remaining_duration > 0:
            return []
        self.is_active = False
        self.is_completed = True
        released: List[Tuple[Contributor, Optional[Skill]]] = []
        for role in self.roles:
            if role.contributor is not None:
                released.append((role.contributor, role.contributor.release(role)))
        return released

    def current_score(self, day: int) -> int:
        return self.score - max(day - self.deadline_day, 0)

    def contributor_names(self) -> Tuple[str, ...]:
        return tuple(role.contributor.name for role in self.roles if role.contributor is not None)


@dataclass(frozen=True)
class SimulationConfig:
    logging_level: str = "INFO"
    max_days: Optional[int] = None
    calendar_start: Optional[date] = None
    narrate: bool = True
