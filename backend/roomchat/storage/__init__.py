"""Embedded DuckDB storage shared by the durable services."""

from .service import MAX_BIGINT, MEMORY_DB, StorageService, now_ms

__all__ = [
    "MAX_BIGINT",
    "MEMORY_DB",
    "StorageService",
    "now_ms",
]
