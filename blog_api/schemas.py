import json

from pydantic import BaseModel, Field, field_validator

MAX_NAME_LENGTH = 100


def parse_name_list(value) -> list[str]:
    """
    Normalise a category/tag field into a list of names.

    Accepts a list, a JSON-encoded array string, or a comma-separated
    string.  Any other type yields an empty list.  Blank entries are
    dropped and the first occurrence of each name wins.
    """
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            decoded = None
        items = decoded if isinstance(decoded, list) else value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []

    names: list[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        name = item.strip()
        if name and name not in names:
            names.append(name)
    return names


def _check_name_lengths(names: list[str]) -> list[str]:
    for name in names:
        if len(name) > MAX_NAME_LENGTH:
            raise ValueError(f"name exceeds {MAX_NAME_LENGTH} characters: {name[:20]}...")
    return names


# --- User ---

class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    email: str = Field(max_length=255)
    name: str | None = Field(None, min_length=1, max_length=150)
    bio: str | None = None
    avatar: str | None = Field(None, max_length=500)


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    parent_id: int | None = None


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1)


# --- Blog ---

class BlogCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(max_length=1000)
    content: str
    image: str = Field(min_length=1, max_length=500)
    reading_time: int | None = Field(None, ge=1)
    featured: bool = False
    categories: list[str] = []
    tags: list[str] = []

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _parse_names(cls, value):
        return parse_name_list(value)

    @field_validator("categories", "tags")
    @classmethod
    def _limit_names(cls, value: list[str]) -> list[str]:
        return _check_name_lengths(value)


class BlogUpdate(BaseModel):
    """
    Partial update.  Only fields present in the payload are applied;
    supplying ``categories`` or ``tags`` (even empty) replaces the
    existing set.
    """

    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = Field(None, max_length=1000)
    content: str | None = None
    image: str | None = Field(None, min_length=1, max_length=500)
    reading_time: int | None = Field(None, ge=1)
    featured: bool | None = None
    categories: list[str] | None = None
    tags: list[str] | None = None

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def _parse_names(cls, value):
        return parse_name_list(value)

    @field_validator("categories", "tags")
    @classmethod
    def _limit_names(cls, value: list[str] | None) -> list[str] | None:
        return value if value is None else _check_name_lengths(value)


# --- Pagination ---

class PaginationMeta(BaseModel):
    total_count: int
    total_pages: int
    current_page: int
    limit: int
