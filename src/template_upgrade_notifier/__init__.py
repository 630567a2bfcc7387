"""
Template Upgrade Notifier

Finds repositories whose template marker file still names an outdated
template version, opens an upgrade issue in each and optionally a pull
request with the upgrade applied by a coding agent.
"""

from __future__ import annotations

from .cli import main
from .exceptions import NotifierError
from .models import DiscoveredRepository, MigrationSpec
from .orchestrator import Runner, RunnerConfig
from .summary import RunSummary
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "DiscoveredRepository",
    "MigrationSpec",
    "NotifierError",
    "RunSummary",
    "Runner",
    "RunnerConfig",
    "main",
    "setup_logging",
]
