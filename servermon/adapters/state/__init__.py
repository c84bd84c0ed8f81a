"""
State module - RunStateStore implementations.
"""

from servermon.adapters.state.json_store import AdapterJsonStateStore

__all__ = ["AdapterJsonStateStore"]
