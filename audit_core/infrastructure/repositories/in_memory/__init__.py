"""
In-Memory Repository Implementations.

For testing and local development. NOT FOR PRODUCTION.
Data is lost on process restart.
"""

from .activity_log import InMemoryActivityLogRepository

__all__ = ["InMemoryActivityLogRepository"]
