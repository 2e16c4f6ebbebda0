"""Repository adapters - Database and in-process implementations."""

from .memory import MemoryProfileRepository, MemoryStore, MemoryVerificationRepository
from .postgres import PostgresProfileRepository, PostgresVerificationRepository, run_migrations

__all__ = [
    "MemoryProfileRepository",
    "MemoryStore",
    "MemoryVerificationRepository",
    "PostgresProfileRepository",
    "PostgresVerificationRepository",
    "run_migrations",
]
