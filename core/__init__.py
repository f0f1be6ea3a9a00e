"""
Core Module Package.

Infrastructure shared by every other package.

Components:
- clock: Unified, mockable time abstraction
- config: Application / domain / source configuration
- constants: Island, surf-spot and tide-station reference data
"""

from core.clock import HAWAII_TZ, ClockProtocol, MockClock, SystemClock, to_hawaii_time
from core.config import AppConfig, DomainConfig, SourceConfig


__all__ = [
    "HAWAII_TZ",
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "to_hawaii_time",
    "AppConfig",
    "DomainConfig",
    "SourceConfig",
]
