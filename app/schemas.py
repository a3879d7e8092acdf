from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _normalize_tags(value) -> List[str]:
    """Accept a list or a comma separated string; trim, drop blanks and duplicates."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    seen = []
    for tag in value:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class AuthorOut(BaseModel):
    id: int
    name: str
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PostSummary(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: str
    featured_image: Optional[str] = None
    category: str
    tags: List[str] = []
    status: str
    views: int
    read_time_minutes: int
    created_at: datetime
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author_id: int
    author: Optional[AuthorOut] = None

    model_config = ConfigDict(from_attributes=True)


class PostOut(PostSummary):
    content: str


class PostPage(BaseModel):
    items: List[PostSummary]
    page: int
    limit: int
    total: int
    total_pages: int


class PostDetail(BaseModel):
    post: PostOut
    related: List[PostSummary]
    comments_count: int
    like_count: int
    is_liked: bool
    is_saved: bool


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    # validate_default so a missing "tags" still comes out as []
    tags: Union[List[str], str, None] = Field(default=None, validate_default=True)
    status: Literal["draft", "published"] = "draft"

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("tags")
    @classmethod
    def split_tags(cls, v):
        return _normalize_tags(v)


class PostUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=50)
    tags: Union[List[str], str, None] = None
    status: Optional[Literal["draft", "published"]] = None

    @field_validator("tags")
    @classmethod
    def split_tags(cls, v):
        if v is None:
            return None
        return _normalize_tags(v)


class CommentOut(BaseModel):
    id: int
    post_id: int
    parent_id: Optional[int] = None
    content: str
    created_at: datetime
    author: Optional[AuthorOut] = None
    like_count: int = 0
    is_liked: bool = False
    replies: List["CommentOut"] = []


class CommentCreate(BaseModel):
    content: str = ""
    parent_id: Optional[int] = None


class ToggleResult(BaseModel):
    liked: bool
    count: int


class SaveResult(BaseModel):
    saved: bool


class CategoryCount(BaseModel):
    name: str
    count: int


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    image: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RoleUpdate(BaseModel):
    role: Literal["user", "admin"]
