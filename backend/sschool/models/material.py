from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from sschool.core.database import Base, generate_id, utcnow


class Material(Base):
    """
    Study note owned by a single student.

    user_id is a plain reference rather than a foreign key. Deleting a user
    removes their materials in a second, separate statement, so a failure in
    between can leave orphans; the scheduler's sweep job collects those.
    """
    __tablename__ = "materials"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship(
        "User",
        primaryjoin="foreign(Material.user_id) == User.id",
        viewonly=True,
        lazy="joined",
    )
