from __future__ import annotations
import math
import re
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _none_to_empty(v: Any) -> Any:
    return "" if v is None else v


def _as_list(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v.strip() else []
    return v


class _ResumeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Link(_ResumeModel):
    label: str = ""
    url: str = ""

    @field_validator("label", "url", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _none_to_empty(v)


class Personal(_ResumeModel):
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    links: List[Link] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _none_to_empty(v)

    @field_validator("links", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        v = _as_list(v)
        if not isinstance(v, list):
            return v
        return [{"label": "", "url": x} if isinstance(x, str) else x for x in v]


class Experience(_ResumeModel):
    company: str = ""
    role: str = ""
    location: Optional[str] = None
    start_date: str = Field(default="", alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    bullets: List[str] = Field(default_factory=list)

    @field_validator("company", "role", "start_date", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _none_to_empty(v)

    @field_validator("bullets", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return _as_list(v)


class Education(_ResumeModel):
    institution: str = ""
    degree: str = ""
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    bullets: List[str] = Field(default_factory=list)

    @field_validator("institution", "degree", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _none_to_empty(v)

    @field_validator("bullets", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return _as_list(v)


class Project(_ResumeModel):
    name: str = ""
    link: str = ""
    bullets: List[str] = Field(default_factory=list)

    @field_validator("name", "link", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _none_to_empty(v)

    @field_validator("bullets", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return _as_list(v)


class SkillGroup(_ResumeModel):
    category: str = ""
    items: List[str] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _none_to_empty(v)

    @field_validator("items", mode="before")
    @classmethod
    def _split_items(cls, v: Any) -> Any:
        # Models sometimes return "Python, SQL" instead of a list
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return _as_list(v)


class Certification(_ResumeModel):
    name: str = ""
    date: Optional[str] = None
    issuer: Optional[str] = None
    url: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _none_to_empty(v)


class StructuredResume(_ResumeModel):
    personal: Personal = Field(default_factory=Personal)
    summary: Optional[str] = None
    experience: List[Experience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    skills: List[SkillGroup] = Field(default_factory=list)
    certifications: List[Certification] = Field(default_factory=list)
    achievements: List[str] = Field(default_factory=list)

    @field_validator("personal", mode="before")
    @classmethod
    def _personal(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("experience", "education", "projects", "achievements", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return _as_list(v)

    @field_validator("skills", mode="before")
    @classmethod
    def _skills(cls, v: Any) -> Any:
        # Flat ["Python", "SQL"] entries are gathered into a single "Skills" group
        v = _as_list(v)
        if not isinstance(v, list):
            return v
        groups = [x for x in v if not isinstance(x, str)]
        loose = [s.strip() for x in v if isinstance(x, str) for s in x.split(",") if s.strip()]
        if loose:
            groups.append({"category": "Skills", "items": loose})
        return groups

    @field_validator("certifications", mode="before")
    @classmethod
    def _certifications(cls, v: Any) -> Any:
        v = _as_list(v)
        if not isinstance(v, list):
            return v
        return [{"name": x} if isinstance(x, str) else x for x in v]

    def to_wire(self) -> dict[str, Any]:
        """Dump with the camelCase keys used in prompts and API payloads."""
        return self.model_dump(by_alias=True)


# -------- Scores --------
def clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


def normalize_score(value: Any) -> int:
    """Bring a generated score onto the 0-100 scale.

    Values strictly between 0 and 1 are legacy fractions and are multiplied
    by 100, as is a decimal 1.0 (a perfect match on the 0-1 scale). An
    integer 1 stays 1. The result is a whole number, so applying this twice
    gives the same result as applying it once.
    """
    if isinstance(value, bool):
        raise ValueError("score must be a number")
    if isinstance(value, str):
        m = re.search(r"-?\d+(?:\.\d+)?", value)
        if not m:
            raise ValueError(f"score is not numeric: {value!r}")
        value = m.group(0)
    decimal = isinstance(value, float) or (isinstance(value, str) and "." in value)
    score = float(value)
    if math.isnan(score) or math.isinf(score):
        raise ValueError(f"score is not finite: {value!r}")
    if 0 < score < 1 or (decimal and score == 1):
        score *= 100
    return clamp(math.floor(score + 0.5), 0, 100)


def _dedupe(items: List[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


class ScoreReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: int = 0
    missing_keywords: List[str] = Field(default_factory=list)
    matched_keywords: List[str] = Field(default_factory=list)
    weak_sections: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v: Any) -> int:
        return normalize_score(0 if v is None else v)

    @field_validator("missing_keywords", "matched_keywords", "weak_sections", mode="before")
    @classmethod
    def _keywords(cls, v: Any) -> Any:
        v = _as_list(v)
        if isinstance(v, list):
            return [str(x) for x in v if x is not None]
        return v

    @field_validator("matched_keywords", "weak_sections")
    @classmethod
    def _unique(cls, v: List[str]) -> List[str]:
        return _dedupe(v)

    @field_validator("missing_keywords")
    @classmethod
    def _sorted(cls, v: List[str]) -> List[str]:
        return sorted(_dedupe(v), key=lambda s: (s.casefold(), s))
