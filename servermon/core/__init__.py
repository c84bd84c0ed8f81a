"""
Core module - Entities, ports and errors of the health-check engine.

Nothing in here performs I/O.
"""
