"""
Core module initialization.
Exports configuration, logging and clock utilities.
"""

from storefront.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from storefront.core.clock import (
    Scheduler,
    TimerHandle,
    AsyncioScheduler,
    ManualScheduler,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "Scheduler",
    "TimerHandle",
    "AsyncioScheduler",
    "ManualScheduler",
]
