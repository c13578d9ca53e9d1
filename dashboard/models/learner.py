from __future__ import annotations

from dataclasses import dataclass

LEVEL_ADVANCED = "Advanced"
LEVEL_INTERMEDIATE = "Intermediate"
LEVEL_BEGINNER = "Beginner"


@dataclass(frozen=True, slots=True)
class Course:
    title: str
    completion: float
    status: str


@dataclass(frozen=True, slots=True)
class Learner:
    """Per-snapshot aggregate of one learner's courses.

    The week1_avg/week2_avg/recent_avgs fields are only set on learners
    produced by the cross-snapshot comparison; a plain learner record from a
    single snapshot leaves them as None.
    """

    id: int
    name: str
    email: str
    district: str
    courses: tuple[Course, ...] = ()
    total_completion: float = 0.0
    completed: int = 0  # courses at >= 100
    in_progress: int = 0  # courses in [1, 100)
    not_started: int = 0  # everything else
    avg_completion: int = 0
    level: str = ""  # Advanced|Intermediate|Beginner, "" when synthesised
    week1_avg: int | None = None
    week2_avg: int | None = None
    recent_avgs: tuple[int | None, ...] | None = None

    @property
    def course_count(self) -> int:
        return len(self.courses)


def level_for(completed: int) -> str:
    if completed >= 3:
        return LEVEL_ADVANCED
    if completed >= 1:
        return LEVEL_INTERMEDIATE
    return LEVEL_BEGINNER
