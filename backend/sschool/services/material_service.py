import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from sschool.core.database import store_errors
from sschool.core.exceptions import NotFoundError
from sschool.models.material import Material
from sschool.models.user import User
from sschool.schemas.material import MaterialCreateRequest
from sschool.services.validation import clean, require
from sschool.utils.pagination import PageParams, PageResult, paginate, search_clause

logger = logging.getLogger(__name__)

MATERIAL_SEARCH_COLUMNS = (Material.title, Material.content)


class MaterialService:
    """Study notes. Each material belongs to exactly one user and is only
    listed back to that user."""

    @staticmethod
    def add_material(db: Session, owner_id: str, payload: MaterialCreateRequest) -> Material:
        require("Title and content are required", payload.title, payload.content)
        material = Material(
            user_id=owner_id,
            title=clean(payload.title),
            content=clean(payload.content),
        )
        with store_errors(db):
            db.add(material)
            db.commit()

        # Reload with the owner populated
        created = db.get(Material, material.id, populate_existing=True)
        if created is None:
            raise NotFoundError("Material not found")
        return created

    @staticmethod
    def list_materials(
        db: Session,
        owner_id: str,
        params: PageParams,
        search: Optional[str] = None,
    ) -> PageResult:
        stmt = (
            select(Material)
            .where(Material.user_id == owner_id)
            .order_by(Material.created_at.desc())
        )
        clause = search_clause(MATERIAL_SEARCH_COLUMNS, search)
        if clause is not None:
            stmt = stmt.where(clause)
        return paginate(db, stmt, params)

    @staticmethod
    def delete_for_owner(db: Session, owner_id: str) -> int:
        """Delete every material owned by ``owner_id``; returns how many"""
        with store_errors(db):
            result = db.execute(delete(Material).where(Material.user_id == owner_id))
            db.commit()
        return result.rowcount or 0

    @staticmethod
    def sweep_orphans(db: Session) -> int:
        """Delete materials whose owner no longer exists.

        Covers the window where a user delete committed but the follow-up
        material delete did not.
        """
        with store_errors(db):
            result = db.execute(
                delete(Material).where(Material.user_id.not_in(select(User.id))).execution_options(synchronize_session=False)
            )
            db.commit()
        removed = result.rowcount or 0
        if removed:
            logger.info(f"Removed {removed} orphaned materials")
        return removed


material_service = MaterialService()
