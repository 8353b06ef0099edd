"""Tracker manifest definition for the plugin system."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from pydantic import BaseModel

from ui_test_orchestrator.tracking.base import TestManagementClient


@dataclass(frozen=True, kw_only=True)
class TrackerManifest[ConfigT: BaseModel]:
    """Manifest describing a tracker plugin.

    The manifest contains references to the configuration class and the
    client factory function for lazy loading of trackers based on their key.
    """

    config_cls: type[ConfigT]
    client_factory: Callable[
        [ConfigT], AbstractAsyncContextManager[TestManagementClient]
    ]
