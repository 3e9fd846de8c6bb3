"""Front matter schema models for Quire content.

Two record kinds exist:

- The site record, from the root ``content/_index.md``: the about page that
  carries the site title, the template used for posts, and the author's
  ``extra`` data (interests, education, avatar icons).
- The post record, from every other markdown file: title and date.

Nested sections use ``SectionRecord``, which is the site record without the
required ``page_template`` or the typed ``extra`` block.

List fields keep their order and length exactly as written.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import SchemaError

RecordKind = Literal["site", "section", "post"]

_LINK_SCHEMES = {"http", "https", "mailto"}


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


class AvatarIcon(BaseModel):
    """A social/profile icon shown next to the author avatar."""

    model_config = ConfigDict(frozen=True)

    icon: str
    link: str

    @field_validator("icon")
    @classmethod
    def check_icon(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("link")
    @classmethod
    def check_link(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in _LINK_SCHEMES:
            raise ValueError(f"unsupported URL scheme in {value!r}")
        if parts.scheme == "mailto":
            if "@" not in parts.path:
                raise ValueError(f"mailto link has no address: {value!r}")
        elif not parts.netloc:
            raise ValueError(f"URL has no host: {value!r}")
        return value


class Course(BaseModel):
    """One education entry."""

    model_config = ConfigDict(frozen=True)

    course: str
    institution: str
    year: int = Field(ge=1000, le=9999)

    @field_validator("course", "institution")
    @classmethod
    def check_text(cls, value: str) -> str:
        return _require_text(value)


class Education(BaseModel):
    model_config = ConfigDict(frozen=True)

    courses: list[Course] = Field(default_factory=list)


class SiteExtra(BaseModel):
    """The ``[extra]`` block of the site record.

    Keys other than the three known ones are kept as-is so templates can
    use them.
    """

    model_config = ConfigDict(extra="allow")

    interests: list[str] = Field(default_factory=list)
    education: Education = Field(default_factory=Education)
    avatar_icons: list[AvatarIcon] = Field(default_factory=list)


class SectionRecord(BaseModel):
    """Front matter of an ``_index.md`` below the content root."""

    model_config = ConfigDict(extra="allow")

    title: str
    page_template: str | None = None
    template: str | None = None
    description: str | None = None
    sort_by: Literal["date", "title", "none"] = "date"
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return _require_text(value)


class SiteRecord(SectionRecord):
    """Front matter of the root ``content/_index.md``."""

    page_template: str
    extra: SiteExtra = Field(default_factory=SiteExtra)

    @field_validator("page_template")
    @classmethod
    def check_page_template(cls, value: str) -> str:
        return _require_text(value)


class PostRecord(BaseModel):
    """Front matter of a post."""

    model_config = ConfigDict(extra="allow")

    title: str
    date: dt.date
    description: str | None = None
    draft: bool = False
    slug: str | None = None
    template: str | None = None
    tags: list[str] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_datetime(cls, value: Any) -> Any:
        # TOML and YAML both hand back datetime for offset date-times
        if isinstance(value, dt.datetime):
            return value.date()
        return value


_MODELS: dict[str, type[BaseModel]] = {
    "site": SiteRecord,
    "section": SectionRecord,
    "post": PostRecord,
}


def _format_errors(exc: ValidationError) -> list[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        problems.append(f"{location}: {error['msg']}")
    return problems


def validate_record(frontmatter: dict[str, Any], kind: RecordKind) -> BaseModel:
    """Validate a parsed front matter mapping as a record of the given kind.

    Args:
        frontmatter: Parsed metadata block.
        kind: ``"site"``, ``"section"`` or ``"post"``.

    Returns:
        The validated model instance.

    Raises:
        SchemaError: If any field is missing or malformed.
    """
    model = _MODELS[kind]
    try:
        return model.model_validate(frontmatter)
    except ValidationError as exc:
        raise SchemaError(_format_errors(exc)) from exc
