"""Tracker selection settings shared by all providers."""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field


class TrackerSettings(BaseModel):
    """Which tracker provider to load and how to pick the cases of a suite."""

    provider: str = Field(..., description="Provider key, e.g. 'testrail'")
    config: Mapping[str, Any] = Field(
        default_factory=dict, description="Provider-specific configuration"
    )
    label: str | None = Field(default=None, description="Select cases by label")
    case_ids: Sequence[int] = Field(
        default_factory=tuple, description="Fallback case ids when no label matches"
    )
    run_name_prefix: str = "AutoRun"
