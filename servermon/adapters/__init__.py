"""
Adapters module - Implementations of the core ports.
"""
