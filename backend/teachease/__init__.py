"""
TeachEase local-first data layer: on-device record storage with offline sync.
"""

__version__ = "1.0.0"
