"""Custom exception hierarchy for glyphlex."""


class GlyphlexError(Exception):
    """Base exception for all glyphlex errors."""


class ValidationError(GlyphlexError):
    """Invalid data (blank sound, unknown ancestry kind, bad position)."""


class EntityNotFoundError(GlyphlexError):
    """Entity doesn't exist in the database."""


class DuplicateEntityError(GlyphlexError):
    """Entity with the same key already exists."""


class RelationError(GlyphlexError):
    """Relation constraint violation (e.g., delete with references)."""


class CycleDetectedError(RelationError):
    """An ancestry mutation would make an entry its own ancestor."""

    def __init__(self, entry_id: int, ancestor_id: int) -> None:
        self.entry_id = entry_id
        self.ancestor_id = ancestor_id
        if entry_id == ancestor_id:
            detail = f"making entry {entry_id} its own ancestor"
        else:
            detail = f"adding {ancestor_id} as an ancestor of {entry_id}"
        super().__init__(f"{detail} would create a cycle in the etymology tree")


class DatabaseError(GlyphlexError):
    """Schema version mismatch, connection failure."""
