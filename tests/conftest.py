from typing import Iterable, Optional, Tuple

import pytest

from staffing_sim.models import Contributor, Project, Skill


def build_contributor(name: str, **levels: int) -> Contributor:
    return Contributor(name, {skill: Skill(skill, level) for skill, level in levels.items()})


def build_project(
    name: str,
    duration: int = 1,
    score: int = 10,
    deadline: int = 0,
    roles: Optional[Iterable[Tuple[str, int]]] = None,
) -> Project:
    project = Project(name=name, duration=duration, score=score, deadline_day=deadline)
    for skill_name, level in roles or ():
        project.add_role(skill_name, level)
    return project


@pytest.fixture
def make_contributor():
    return build_contributor


@pytest.fixture
def make_project():
    return build_project


@pytest.fixture
def sample_text() -> str:
    return "\n".join(
        [
            "3 3",
            "Anna 1",
            "C++ 2",
            "Bob 2",
            "HTML 5",
            "CSS 5",
            "Maria 1",
            "Python 3",
            "Logging 5 10 5 1",
            "C++ 3",
            "WebServer 7 10 7 2",
            "HTML 3",
            "C++ 2",
            "WebChat 10 20 20 2",
            "Python 3",
            "HTML 3",
            "",
        ]
    )
