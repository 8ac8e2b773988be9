from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from database import Base

POST_TYPES = ("image", "video")

class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(10), nullable=False)  # 'image' or 'video'
    url = Column(String(500), nullable=False)  # /uploads/<file> or external URL
    caption = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # No ORM cascades: dependent rows are removed explicitly before the post
    author = relationship("User", back_populates="posts")
