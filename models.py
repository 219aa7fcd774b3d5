from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password = Column(String(128), nullable=False)  # bcrypt hash
    email = Column(String(255), default="")
    nickname = Column(String(100), default="")
    avatar = Column(String(500), default="")
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))

    articles = relationship("Article", back_populates="owner")


class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    slug = Column(String(200), default="")
    category = Column(String(100), default="")
    tags = Column(String(500), default="")
    status = Column(String(20), default="draft", index=True)
    views = Column(Integer, default=0, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), index=True)
    updated_at = Column(DateTime(timezone=True))

    owner = relationship("User", back_populates="articles")
