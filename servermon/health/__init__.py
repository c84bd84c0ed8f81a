"""
Health module - Configuration and wiring for a servermon check pass.

This module loads the configured servers and recipients, builds the probe,
state store and notifier, and runs one pass of the check engine.
"""

from servermon.health.config import load_config, load_servers, load_users
from servermon.health.runner import run_check_pass

__all__ = ["load_config", "load_servers", "load_users", "run_check_pass"]
