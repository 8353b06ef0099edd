"""Configuration for browser sessions."""

from typing import Literal

from pydantic import BaseModel, Field

type BrowserKind = Literal["chrome", "firefox", "edge", "safari"]


class BrowserConfig(BaseModel):
    """Configuration for browser sessions."""

    kind: BrowserKind = "chrome"
    headless: bool = False
    wait_timeout: float = Field(default=15.0, gt=0)
    window_width: int = 1920
    window_height: int = 1080
