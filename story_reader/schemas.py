from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime

from .models import Role, StoryStatus


# --- Token ---
class TokenData(BaseModel):
    user_id: int
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# --- User ---
class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: Optional[str] = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Role
    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class ProfileUpdate(BaseModel):
    """Absent fields are left alone; an explicit null clears the value."""
    full_name: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=1000)


# --- Category ---
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    class Config:
        from_attributes = True


# --- Story ---
class StoryCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    cover_image_url: Optional[str] = Field(None, max_length=1000)
    author_name: Optional[str] = Field(None, max_length=255)
    status: StoryStatus = StoryStatus.ONGOING
    category_ids: List[int] = []


class StoryUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    cover_image_url: Optional[str] = Field(None, max_length=1000)
    author_name: Optional[str] = Field(None, max_length=255)
    status: Optional[StoryStatus] = None
    category_ids: Optional[List[int]] = None

    @field_validator("title", "status", "category_ids")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class StoryResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    author_id: Optional[int] = None
    author_name: Optional[str] = None
    status: StoryStatus
    total_chapters: int
    total_views: int
    rating: float
    is_published: bool
    categories: List[CategoryResponse] = []
    created_at: datetime
    updated_at: datetime
    class Config:
        from_attributes = True


class ViewStatsResponse(BaseModel):
    story_id: int
    story_title: str
    story_slug: str
    total_views: int
    total_chapters: int


# --- Chapter ---
class ChapterCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    is_published: bool = False


class ChapterUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    is_published: Optional[bool] = None

    @field_validator("title", "content", "is_published")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class ChapterNavItem(BaseModel):
    chapter_number: int
    title: str
    slug: str
    class Config:
        from_attributes = True


class ChapterListItem(BaseModel):
    id: int
    story_id: int
    chapter_number: int
    title: str
    slug: str
    word_count: int
    views: int
    is_published: bool
    published_at: Optional[datetime] = None
    created_at: datetime
    class Config:
        from_attributes = True


class ChapterResponse(ChapterListItem):
    content: str
    updated_at: datetime
    prev_chapter: Optional[ChapterNavItem] = None
    next_chapter: Optional[ChapterNavItem] = None


# --- Bookmark ---
class BookmarkRequest(BaseModel):
    story_id: int


class BookmarkStatusResponse(BaseModel):
    is_bookmarked: bool
    total_bookmarks: int


class BookmarkResponse(BaseModel):
    id: int
    user_id: int
    story_id: int
    created_at: datetime
    story_title: str
    story_slug: str
    cover_image_url: Optional[str] = None
    author_name: Optional[str] = None
    total_chapters: int
    total_views: int


# --- Reading history ---
class HistoryUpdate(BaseModel):
    last_chapter_id: Optional[int] = None


class HistoryResponse(BaseModel):
    id: int
    user_id: int
    story_id: int
    last_chapter_id: Optional[int] = None
    last_read_at: datetime
    story_title: str
    story_slug: str
    cover_image_url: Optional[str] = None
    chapter_number: Optional[int] = None
    chapter_title: Optional[str] = None
