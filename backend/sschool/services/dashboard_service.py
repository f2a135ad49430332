"""
Admin dashboard aggregation.

Each count runs in its own worker thread with its own session, and the
results are gathered into a single response. All queries are read-only and
independent of each other.
"""
import asyncio
from typing import Any, Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from sschool.models.book import Book
from sschool.models.material import Material
from sschool.models.user import Role, User

RECENT_USERS_LIMIT = 5


def _with_session(session_factory: sessionmaker, query: Callable[[Session], Any]) -> Any:
    with session_factory() as db:
        return query(db)


def _count(stmt):
    return lambda db: db.scalar(stmt) or 0


def _recent_users(db: Session) -> list[User]:
    stmt = select(User).order_by(User.created_at.desc()).limit(RECENT_USERS_LIMIT)
    return list(db.scalars(stmt).all())


async def collect_dashboard_stats(session_factory: sessionmaker) -> dict[str, Any]:
    queries = [
        _count(select(func.count()).select_from(User)),
        _count(select(func.count()).select_from(User).where(User.role == Role.STUDENT)),
        _count(select(func.count()).select_from(User).where(User.role == Role.ADMIN)),
        _count(select(func.count()).select_from(Book)),
        _count(select(func.count()).select_from(Material)),
        _recent_users,
    ]
    (
        total_users,
        total_students,
        total_admins,
        total_books,
        total_materials,
        recent_users,
    ) = await asyncio.gather(*(run_in_threadpool(_with_session, session_factory, query) for query in queries))

    return {
        "total_users": total_users,
        "total_students": total_students,
        "total_admins": total_admins,
        "total_books": total_books,
        "total_materials": total_materials,
        "recent_users": recent_users,
    }
