"""Repository layer for data access."""

from .record_store import AnyOf, Op, Predicate, RecordStore, where

__all__ = ["AnyOf", "Op", "Predicate", "RecordStore", "where"]
