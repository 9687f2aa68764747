"""Repository adapters - Database implementations."""

from .postgres import PostgresDraftSnapshotStore, run_migrations

__all__ = ["PostgresDraftSnapshotStore", "run_migrations"]
