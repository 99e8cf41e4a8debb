"""
Base class for persisted records.

Records accept both the stored camelCase keys and the Python field
names, and round-trip to plain documents for the document store.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from comensales.domain.shared.errors import ValidationError
from comensales.domain.shared.value_objects import TIME_PATTERN

TRecord = TypeVar("TRecord", bound="Record")

# HH:mm, 24h
TimeString = Annotated[str, Field(pattern=TIME_PATTERN)]


class Record(BaseModel):
    """
    Immutable persisted entity.

    Example:
        >>> slot = MealSlot.from_document({"id": "tc-1", "nombre": "Almuerzo", ...})
        >>> slot.to_document()["nombreGrupo"]
        'Comidas'
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def from_document(cls: type[TRecord], doc: dict[str, Any]) -> TRecord:
        """
        Map a stored document onto the record.

        Raises:
            ValidationError: If the document does not match the schema
        """
        try:
            return cls.model_validate(doc)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {cls.__name__} document {doc.get('id')!r}: {e}"
            ) from e

    def to_document(self) -> dict[str, Any]:
        """Plain JSON-compatible document keyed by stored field names."""
        return self.model_dump(mode="json", by_alias=True)
