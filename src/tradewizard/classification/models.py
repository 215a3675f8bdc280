from __future__ import annotations

from enum import IntEnum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

CandidateSource = Literal["provider", "fallback"]


class HSLevel(IntEnum):
    """Depth in the HS hierarchy; a level-``n`` code has ``2 * n`` digits."""

    CHAPTER = 1
    HEADING = 2
    SUBHEADING = 3

    @property
    def digits(self) -> int:
        return 2 * int(self)

    @classmethod
    def for_code(cls, code: str) -> "HSLevel":
        if len(code) not in (2, 4, 6) or not code.isdigit():
            raise ValueError(f"HS code must have 2, 4 or 6 digits, got {code!r}")
        return cls(len(code) // 2)


class ClassificationCandidate(BaseModel):
    """A single HS code suggestion with its confidence in [0, 1]."""

    code: str = Field(pattern=r"^\d{2}(?:\d{2}){0,2}$")
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: CandidateSource

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def level(self) -> HSLevel:
        return HSLevel.for_code(self.code)


class HSSelection(BaseModel):
    """The chapter/heading/subheading picked so far in one session."""

    chapter: Optional[ClassificationCandidate] = None
    heading: Optional[ClassificationCandidate] = None
    subheading: Optional[ClassificationCandidate] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_hierarchy(self) -> "HSSelection":
        for slot, level in (
            (self.chapter, HSLevel.CHAPTER),
            (self.heading, HSLevel.HEADING),
            (self.subheading, HSLevel.SUBHEADING),
        ):
            if slot is not None and slot.level != level:
                raise ValueError(f"{level.name.lower()} slot requires a {level.digits}-digit code, got {slot.code}")
        if self.heading is not None:
            if self.chapter is None:
                raise ValueError("heading requires a selected chapter")
            if self.heading.code[:2] != self.chapter.code:
                raise ValueError(f"heading {self.heading.code} is not under chapter {self.chapter.code}")
        if self.subheading is not None:
            if self.heading is None:
                raise ValueError("subheading requires a selected heading")
            if self.subheading.code[:4] != self.heading.code:
                raise ValueError(f"subheading {self.subheading.code} is not under heading {self.heading.code}")
        return self

    @property
    def is_complete(self) -> bool:
        return self.subheading is not None

    @property
    def deepest(self) -> Optional[ClassificationCandidate]:
        return self.subheading or self.heading or self.chapter

    @property
    def code(self) -> Optional[str]:
        deepest = self.deepest
        return deepest.code if deepest is not None else None


class ProductExample(BaseModel):
    name: str
    description: str = ""
    hs_code: str
    image_url: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class HSCodePathItem(BaseModel):
    code: str
    name: str
    level: HSLevel

    model_config = ConfigDict(extra="forbid", frozen=True)
