"""
Response models for character aggregation.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class SectionKey(str, Enum):
    """Top-level character data categories, in canonical request order."""
    BASIC = "basic"
    STAT = "stat"
    EQUIPMENT = "equipment"
    SKILLS = "skills"
    UNION = "union"


class SkillModule(str, Enum):
    """Independently refetchable modules of the skills section."""
    LINK_SKILLS = "linkSkills"
    VMATRIX = "vmatrix"
    HEXAMATRIX = "hexamatrix"
    HEXAMATRIX_STAT = "hexamatrixStat"


ALL_SECTIONS = list(SectionKey)


class CamelModel(BaseModel):
    """Base model serializing to camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorPath(CamelModel):
    """Structured error location: a section, optionally narrowed to a module."""
    section: str = Field(..., description="Section key")
    module: Optional[str] = Field(None, description="Module key within the section")

    def __str__(self) -> str:
        if self.module:
            return f"{self.section}.{self.module}"
        return self.section

    def belongs_to_section(self, section: str) -> bool:
        """Exact section key or any module of it."""
        return self.section == section

    def belongs_to_module(self, section: str, module: str) -> bool:
        """Only the exact ``section.module`` path."""
        return self.section == section and self.module == module


class SectionError(ErrorPath):
    """An error attributed to a section or one of its modules."""
    message: str = Field(..., description="User-facing error message")

    @computed_field
    @property
    def path(self) -> str:
        """Dotted path: ``section`` or ``section.module``."""
        return str(self)


class SectionResult(CamelModel):
    """Payload and sub-module errors produced by one section aggregator."""
    section: SectionKey
    payload: Dict[str, Any] = Field(default_factory=dict)
    errors: List[SectionError] = Field(default_factory=list)


class CompositeResponse(CamelModel):
    """Merged response for all requested sections of a character."""
    character_name: str = Field(..., description="Character name as requested")
    ocid: str = Field(..., description="Opaque upstream character id")
    requested_date: Optional[str] = Field(None, description="Data date (YYYY-MM-DD) if requested")
    fetched_at: datetime = Field(..., description="Assembly completion time")
    sections: Dict[SectionKey, Dict[str, Any]] = Field(default_factory=dict)
    errors: List[SectionError] = Field(default_factory=list)
    cached: bool = Field(False, description="True when served from the response cache")

    def errors_for_section(self, section: str) -> List[SectionError]:
        return [error for error in self.errors if error.belongs_to_section(section)]
