"""
ValidToT vote core.

Vote integrity and access control for image comparison polls.
"""

__version__ = "1.0.0"
