"""Configuration for resilient action retries and visual settling."""

from collections.abc import Sequence

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Retry bounds for the default and focus-fallback strategies."""

    default_attempts: int = Field(default=3, ge=1)
    default_base_delay: float = Field(default=1.0, ge=0)
    fallback_attempts: int = Field(default=5, ge=1)
    fallback_base_delay: float = Field(default=1.5, ge=0)
    # Browser kinds that need window re-focus and script-based interaction
    focus_fallback_kinds: Sequence[str] = ("safari",)


class SettleConfig(BaseModel):
    """Pauses (seconds) that let scrolling and highlighting render."""

    scroll: float = Field(default=0.3, ge=0)
    highlight: float = Field(default=0.4, ge=0)
    focus: float = Field(default=0.5, ge=0)
    restore: float = Field(default=0.2, ge=0)

    @classmethod
    def instant(cls) -> "SettleConfig":
        """Return a configuration without any visual pauses."""
        return cls(scroll=0, highlight=0, focus=0, restore=0)
