from dataclasses import dataclass, field
from typing import Any

# ==================================================
# Compiled Output
# ==================================================

@dataclass
class CompiledQuery:
    """
    Represents the result of the compilation process: SQL text with $1..$n placeholders
    and the values bound to them, in order.
    """
    text: str
    values: list[Any] = field(default_factory=list)
