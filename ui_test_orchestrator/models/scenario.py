"""Models for executable scenarios."""

import re
from collections.abc import Sequence

from pydantic import Field

from ui_test_orchestrator.models.base import Model

CASE_TAG_PATTERN = re.compile(r"^@?(?:C|CaseID_)(\d+)$", re.IGNORECASE)


class Scenario(Model):
    """A named, tagged unit of execution with ordered step texts."""

    name: str = Field(..., min_length=1, description="Unique scenario name")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Tags")
    steps: Sequence[str] = Field(default_factory=tuple, description="Step texts")
    feature: str | None = Field(default=None, description="Owning feature title")

    @property
    def case_id(self) -> int | None:
        """Test-management case id parsed from a ``@C<id>``/``@CaseID_<id>`` tag."""
        for tag in sorted(self.tags):
            if match := CASE_TAG_PATTERN.match(tag):
                return int(match.group(1))
        return None
