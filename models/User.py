from sqlalchemy import Column, Integer, String, Text, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash, never serialized
    full_name = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    posts = relationship("Post", back_populates="author")
    following = relationship("Follower", foreign_keys="Follower.follower_id", back_populates="follower")
    followers = relationship("Follower", foreign_keys="Follower.following_id", back_populates="following_user")
