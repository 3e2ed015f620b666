from dataclasses import dataclass
from typing import Any, Dict, Union


@dataclass(frozen=True)
class Success:
    value: Dict[str, Any]
    from_cache: bool = False


@dataclass(frozen=True)
class Failure:
    reason: str


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class SourceResult:
    """Outcome of one fetcher invocation within an aggregation run."""

    name: str
    outcome: Outcome
    duration_ms: float = 0.0  # diagnostic only

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Success)
