"""
Course threshold configuration and percentage leveling.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .enums import AttainmentLevel
from .exceptions import ConfigurationError


@dataclass(frozen=True)
class CourseThresholds:
    """Level thresholds and class target configured on a course.

    ``level1_threshold < level2_threshold < level3_threshold`` must hold, all
    values are percentages in ``[0, 100]``. ``minimum_target_level`` is the
    level a result must reach for its target to count as met; ``None`` leaves
    the choice to the engine default.
    """
    course_id: str
    level1_threshold: float
    level2_threshold: float
    level3_threshold: float
    target_percentage: float
    minimum_target_level: Optional[int] = None

    def __post_init__(self):
        values = {
            "level1_threshold": self.level1_threshold,
            "level2_threshold": self.level2_threshold,
            "level3_threshold": self.level3_threshold,
            "target_percentage": self.target_percentage,
        }
        missing = [name for name, value in values.items() if value is None]
        if missing:
            raise ConfigurationError(
                f"Course {self.course_id} is missing threshold configuration: {', '.join(missing)}",
                details={"course_id": self.course_id, "missing": missing},
            )

        for name, value in values.items():
            if not 0 <= value <= 100:
                raise ConfigurationError(
                    f"Course {self.course_id} has {name}={value}, expected a percentage in [0, 100]",
                    details={"course_id": self.course_id, name: value},
                )

        if not self.level1_threshold < self.level2_threshold < self.level3_threshold:
            raise ConfigurationError(
                f"Course {self.course_id} thresholds must be strictly increasing "
                f"(got {self.level1_threshold}, {self.level2_threshold}, {self.level3_threshold})",
                details={"course_id": self.course_id, **values},
            )

        if self.minimum_target_level is not None and self.minimum_target_level not in (1, 2, 3):
            raise ConfigurationError(
                f"Course {self.course_id} has minimum_target_level={self.minimum_target_level}, expected 1, 2 or 3",
                details={"course_id": self.course_id, "minimum_target_level": self.minimum_target_level},
            )

    def level_for(self, percentage: float) -> AttainmentLevel:
        """Map a percentage to its level; each band includes its lower edge."""
        if percentage >= self.level3_threshold:
            return AttainmentLevel.LEVEL_3
        if percentage >= self.level2_threshold:
            return AttainmentLevel.LEVEL_2
        if percentage >= self.level1_threshold:
            return AttainmentLevel.LEVEL_1
        return AttainmentLevel.LEVEL_0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level1_threshold": self.level1_threshold,
            "level2_threshold": self.level2_threshold,
            "level3_threshold": self.level3_threshold,
            "target_percentage": self.target_percentage,
            "minimum_target_level": self.minimum_target_level,
        }
