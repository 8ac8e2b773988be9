from sqlalchemy import Column, Integer, DateTime, ForeignKey, func
from database import Base

class SavedPost(Base):
    __tablename__ = "saved_posts"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
