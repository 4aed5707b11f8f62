"""
TaxonomyService for Plant Doctor.

This module provides a singleton service that indexes the canonical
taxonomy table and provides fast in-memory lookups for taxonomy entries.
"""

from typing import Optional

from plantdoc.core.taxonomy import TAXONOMY
from plantdoc.models.taxonomy import TaxonomyEntry


class TaxonomyNotFoundError(Exception):
    """Raised when a taxonomy entry is not found."""

    pass


class TaxonomyService:
    """
    Singleton service for taxonomy lookups.

    Builds index, identity and label indexes over ``TAXONOMY`` once and
    serves lookups from memory.
    """

    _instance: Optional["TaxonomyService"] = None

    def __new__(cls) -> "TaxonomyService":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True

        self._entries: list[TaxonomyEntry] = list(TAXONOMY)
        for position, entry in enumerate(self._entries):
            if entry.index != position:
                raise ValueError(
                    f"Taxonomy entry '{entry.class_identity}' has index "
                    f"{entry.index}, expected {position}"
                )

        # Build indexes for fast lookup
        self._by_index: dict[int, TaxonomyEntry] = {
            entry.index: entry for entry in self._entries
        }
        self._by_identity: dict[str, TaxonomyEntry] = {
            entry.class_identity: entry for entry in self._entries
        }
        self._by_label: dict[str, TaxonomyEntry] = {
            entry.display_label.lower(): entry for entry in self._entries
        }

    def __len__(self) -> int:
        return len(self._entries)

    def get_all(self) -> list[TaxonomyEntry]:
        """Get all taxonomy entries in model output order."""
        return list(self._entries)

    def get_by_index(self, index: int) -> TaxonomyEntry:
        """
        Get taxonomy entry by model output index.

        Args:
            index: Position in the probability vector

        Returns:
            TaxonomyEntry

        Raises:
            TaxonomyNotFoundError: If index not found
        """
        if index not in self._by_index:
            raise TaxonomyNotFoundError(f"Taxonomy index {index} not found")
        return self._by_index[index]

    def get_by_identity(self, class_identity: str) -> TaxonomyEntry:
        """
        Get taxonomy entry by class identity.

        Args:
            class_identity: Model label (e.g., 'Apple___Black_rot')

        Returns:
            TaxonomyEntry

        Raises:
            TaxonomyNotFoundError: If identity not found
        """
        if class_identity not in self._by_identity:
            raise TaxonomyNotFoundError(f"Class identity '{class_identity}' not found")
        return self._by_identity[class_identity]

    def get_by_label(self, label: str) -> TaxonomyEntry:
        """
        Get taxonomy entry by display label (case-insensitive).

        Raises:
            TaxonomyNotFoundError: If label not found
        """
        key = label.strip().lower()
        if key not in self._by_label:
            raise TaxonomyNotFoundError(f"Display label '{label}' not found")
        return self._by_label[key]

    def get_default_symptoms(self, index: int) -> list[str]:
        """Symptom text used when the knowledge store has no record."""
        return list(self.get_by_index(index).default_symptoms)


# Module-level singleton instance
_taxonomy_service: Optional[TaxonomyService] = None


def get_taxonomy_service() -> TaxonomyService:
    """
    Get the singleton TaxonomyService instance.

    Returns:
        TaxonomyService instance
    """
    global _taxonomy_service
    if _taxonomy_service is None:
        _taxonomy_service = TaxonomyService()
    return _taxonomy_service
