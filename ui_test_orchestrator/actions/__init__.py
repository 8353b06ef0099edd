"""Resilient UI actions."""

from ui_test_orchestrator.actions.config import RetryConfig, SettleConfig
from ui_test_orchestrator.actions.executor import (
    EvidenceSink,
    FailureSink,
    ResilientActionExecutor,
)
from ui_test_orchestrator.actions.strategy import (
    ActionStrategy,
    DefaultStrategy,
    FocusFallbackStrategy,
    RetryPolicy,
    SettlePolicy,
    StrategySelector,
)

__all__ = [
    "ActionStrategy",
    "DefaultStrategy",
    "EvidenceSink",
    "FailureSink",
    "FocusFallbackStrategy",
    "ResilientActionExecutor",
    "RetryConfig",
    "RetryPolicy",
    "SettleConfig",
    "SettlePolicy",
    "StrategySelector",
]
