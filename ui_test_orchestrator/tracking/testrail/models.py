"""Pydantic models for TestRail API responses."""

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field


class Label(BaseModel):
    """A label attached to a case."""

    title: str


class CaseStep(BaseModel):
    """One entry of a separated-steps or BDD scenario field."""

    content: str = ""


class Case(BaseModel):
    """A test case from the TestRail API.

    BDD text lives in one of several custom fields depending on the project
    template; each may hold either a string or a list of step entries.
    """

    id: int
    title: str
    labels: Sequence[Label] = Field(default_factory=list)
    custom_testrail_bdd_scenario: str | Sequence[CaseStep] | None = None
    custom_bdd_scenarios: str | Sequence[CaseStep] | None = None
    custom_steps: str | Sequence[CaseStep] | None = None
    custom_steps_separated: str | Sequence[CaseStep] | None = None

    def bdd_fields(self) -> Sequence[str | Sequence[CaseStep] | None]:
        """BDD-bearing fields in lookup order."""
        return (
            self.custom_testrail_bdd_scenario,
            self.custom_bdd_scenarios,
            self.custom_steps,
            self.custom_steps_separated,
        )


class CasesResponse(BaseModel):
    """Paginated response of ``get_cases``."""

    cases: Sequence[Case] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "CasesResponse":
        """Accept both the paginated object and the legacy bare list."""
        if isinstance(payload, list):
            return cls(cases=payload)
        return cls.model_validate(payload)


class RunResponse(BaseModel):
    """Response of ``add_run``."""

    id: int
    name: str = ""
    is_completed: bool = False


class ResultResponse(BaseModel):
    """Response of ``add_result_for_case``."""

    id: int
    status_id: int | None = None
