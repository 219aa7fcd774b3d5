from datetime import datetime
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

ArticleStatus = Literal["draft", "published"]


class Envelope(BaseModel, Generic[T]):
    code: int = 0
    msg: str = "success"
    data: T


class UserBase(BaseModel):
    username: str = Field(min_length=1, max_length=50)


class UserCreate(UserBase):
    password: str = Field(min_length=1)
    nickname: str = Field(min_length=1, max_length=100)
    email: str = ""


class LoginRequest(BaseModel):
    username: str
    password: str


class User(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str = ""
    nickname: str = ""
    avatar: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ArticleBase(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    slug: str = ""
    category: str = ""
    tags: str = ""
    status: ArticleStatus = "draft"


class ArticleCreate(ArticleBase):
    pass


class ArticleUpdate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    slug: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[str] = None
    status: Optional[ArticleStatus] = None


class Article(ArticleBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    views: int = 0
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[User] = None


class LoginData(BaseModel):
    token: str
    token_type: str = "bearer"
    user: User


class HomeData(BaseModel):
    title: str
    articles: List[Article]
