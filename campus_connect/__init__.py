"""
Campus Connect: room booking and class enrollment for multi-college campuses.
"""

__version__ = "1.0.0"
