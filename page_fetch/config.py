"""Configuration objects and constants for the fetcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ConfigurationError

DEFAULT_CONCURRENCY = 2
DEFAULT_OUTPUT = "out"
DEFAULT_JOB_TIMEOUT = 10.0
# evaluated when no script is configured so every job runs the same steps
NOOP_SCRIPT = "false"


@dataclass(frozen=True)
class FetchConfig:
    """Settings shared read-only by every worker and interception handler."""

    concurrency: int = DEFAULT_CONCURRENCY
    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    third_party_only: bool = False
    no_third_party: bool = False
    overwrite: bool = False
    output: str = DEFAULT_OUTPUT
    javascript: Optional[str] = None
    job_timeout: float = DEFAULT_JOB_TIMEOUT
    headless: bool = True

    def __post_init__(self) -> None:
        if self.third_party_only and self.no_third_party:
            raise ConfigurationError(
                "you cannot specify --third-party *and* --no-third-party"
            )
        if self.concurrency < 1:
            raise ConfigurationError(
                f"concurrency must be at least 1 (got {self.concurrency})"
            )
        # accept any sequence from callers but keep the stored value immutable
        object.__setattr__(self, "includes", tuple(self.includes))
        object.__setattr__(self, "excludes", tuple(self.excludes))

    @property
    def script(self) -> str:
        """Script evaluated on every page."""
        return self.javascript or NOOP_SCRIPT
