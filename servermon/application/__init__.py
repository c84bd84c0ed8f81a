"""
Application module - Use cases of the health-check engine.
"""
