"""
Interface module - Command-line entry point.
"""
