from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from sschool.core.database import Base, generate_id, utcnow


class Book(Base):
    __tablename__ = "books"

    id = Column(String(36), primary_key=True, default=generate_id)
    # Creating admin; null for system entries or once that admin is deleted
    user_id = Column(String(36), nullable=True, index=True)
    book_name = Column(String, nullable=False)
    author = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Plain reference, no FK: a dangling user_id loads as owner=None
    owner = relationship(
        "User",
        primaryjoin="foreign(Book.user_id) == User.id",
        viewonly=True,
        lazy="joined",
    )
