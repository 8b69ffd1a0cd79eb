from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# ==================================================
# Result Shapes
# ==================================================


class ResultMode(str, Enum):
    MANY = "many"
    ONE = "one"
    EXACTLY_ONE = "exactly_one"
    NUMERIC = "numeric"


@dataclass(frozen=True)
class ResultShape:
    """
    Describes the JSON a select produces, so nested lateral results can be checked after execution.

    lateral_fields maps each lateral field name to the shape of its subquery (None when the
    subquery was a plain fragment and nothing is known about it). passthrough is the shape of a
    lateral that replaces the whole row.
    """

    mode: ResultMode
    lateral_fields: tuple[tuple[str, ResultShape | None], ...] = ()
    passthrough: ResultShape | None = None

    def needs_checks(self) -> bool:
        if self.mode is ResultMode.EXACTLY_ONE:
            return True
        if self.passthrough is not None and self.passthrough.needs_checks():
            return True
        return any(shape is not None and shape.needs_checks() for _, shape in self.lateral_fields)
