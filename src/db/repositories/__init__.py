"""Repository pattern implementations for data access."""

from src.db.repositories.calls import AsyncCallLogRepository, parse_outcome

__all__ = [
    "AsyncCallLogRepository",
    "parse_outcome",
]
