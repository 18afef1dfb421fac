from pydantic import BaseModel, ConfigDict, Field

from app.models import EMAIL_PATTERN


# --- Auth / User ---

class SignupRequest(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: str
    password: str


class FederatedIdentity(BaseModel):
    """Identity assertion returned by an external provider."""
    subject: str
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    name: str


class SendEmailRequest(BaseModel):
    to: str = Field(pattern=EMAIL_PATTERN)
    subject: str = ""
    text: str = ""


# --- Post ---

class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)


class PostUpdate(BaseModel):
    # Only title and content are mutable; anything else is dropped.
    model_config = ConfigDict(extra="ignore")

    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1)


# --- Pagination ---

class Page(BaseModel):
    """Paginated list envelope, serialised as ``{data, total, page, pageSize}``."""
    model_config = ConfigDict(populate_by_name=True)

    data: list
    total: int
    page: int | None
    page_size: int | None = Field(alias="pageSize")
