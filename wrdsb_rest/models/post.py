"""
post.py — ORM Model for Authored Content

Only what the read-permission check needs: who wrote an item, what type it
is and whether it is published. Content bodies are not stored here.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Index

from wrdsb_rest.core.database import Base


class Post(Base):
    __tablename__ = "post"

    id = Column(Integer, primary_key=True, index=True)
    post_author = Column(Integer, ForeignKey("user.id"), nullable=False)
    post_type = Column(String(20), nullable=False, default="post")
    post_status = Column(String(20), nullable=False, default="publish")
    post_title = Column(String(255), nullable=False, default="")

    __table_args__ = (
        Index("idx_post_author_type_status", "post_author", "post_type", "post_status"),
    )

    def __repr__(self):
        return f"<Post {self.id} {self.post_type}/{self.post_status} by {self.post_author}>"
