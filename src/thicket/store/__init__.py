"""Thicket in-memory forest store."""

from thicket.store.forest import (
    ConstraintViolationError,
    ForestStore,
    InvalidMessageError,
    InvalidParentError,
    NodeNotFoundError,
    RootDeletionError,
    ThicketError,
    make_id,
)

__all__ = [
    "ForestStore",
    "make_id",
    "ThicketError",
    "NodeNotFoundError",
    "ConstraintViolationError",
    "RootDeletionError",
    "InvalidParentError",
    "InvalidMessageError",
]
