"""Metadata record models — ERC-721 style JSON published to the content store.

Attributes are looked up through a closed set of ``TraitTag`` values rather
than by free-form string matching.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TraitTag(str, Enum):
    """Recognized attribute tags, by their on-wire ``trait_type`` label."""

    SUBJECT_NAME = "Student Name"
    SUBJECT_ID = "Student ID"
    PROGRAM = "Program"
    YEAR = "Year"
    FILE_HASH = "File Hash"
    FILE_NAME = "File Name"
    ISSUED_AT = "Issued At"


# Order attributes are written in.
TRAIT_ORDER: tuple[TraitTag, ...] = tuple(TraitTag)

UNKNOWN_DISPLAY_NAME = "Unknown"


class SubjectAttributes(BaseModel):
    """Caller-provided descriptive fields for a document.

    Missing values default to the empty string so the published schema never
    changes shape.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    subject_id: str = ""
    program: str = ""
    year: str = ""
    file_name: str = ""


class MetadataAttribute(BaseModel):
    model_config = ConfigDict(frozen=True)

    trait_type: str
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        # Third-party records often carry numbers here (e.g. a year).
        return "" if v is None else str(v)


class MetadataRecord(BaseModel):
    """The immutable record a MetadataPointer refers to."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    description: str = ""
    image: str = ""
    attributes: list[MetadataAttribute] = Field(default_factory=list)
    external_url: str = ""

    def traits(self) -> dict[TraitTag, str]:
        """Typed view of the recognized attributes; unknown tags are skipped."""
        table: dict[TraitTag, str] = {}
        for attr in self.attributes:
            try:
                tag = TraitTag(attr.trait_type)
            except ValueError:
                continue
            table.setdefault(tag, attr.value)
        return table

    def trait(self, tag: TraitTag) -> str:
        return self.traits().get(tag, "")

    @property
    def display_name(self) -> str:
        """Subject name trait, else the record name, else "Unknown"."""
        for candidate in (self.trait(TraitTag.SUBJECT_NAME), self.name):
            if candidate and candidate.strip():
                return candidate.strip()
        return UNKNOWN_DISPLAY_NAME
