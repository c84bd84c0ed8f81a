"""
servermon - Periodic server health checks that alert only on new failures.
"""

__version__ = "0.1.0"
