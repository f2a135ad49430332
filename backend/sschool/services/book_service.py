from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from sschool.core.database import store_errors
from sschool.core.exceptions import ConflictError, NotFoundError, ValidationError
from sschool.models.book import Book
from sschool.schemas.book import BookCreateRequest, BookUpdateRequest
from sschool.services.validation import clean, parse_id, require
from sschool.utils.pagination import PageParams, PageResult, paginate, search_clause

BOOK_NOT_FOUND_MESSAGE = "Book not found"
DUPLICATE_BOOK_MESSAGE = "Book with this name and author already exists"

BOOK_SEARCH_COLUMNS = (Book.book_name, Book.author, Book.description)


class BookService:
    """Library catalog. Admins manage it; students and anonymous callers read it."""

    @staticmethod
    def list_books(db: Session, params: PageParams, search: Optional[str] = None) -> PageResult:
        stmt = select(Book).order_by(Book.created_at.desc())
        clause = search_clause(BOOK_SEARCH_COLUMNS, search)
        if clause is not None:
            stmt = stmt.where(clause)
        return paginate(db, stmt, params)

    @staticmethod
    def get_book(db: Session, book_id: str) -> Book:
        return BookService._get(db, parse_id(book_id, "book"))

    @staticmethod
    def create_book(db: Session, payload: BookCreateRequest, creator_id: Optional[str] = None) -> Book:
        require("Book name and author are required", payload.book_name, payload.author)
        # Trimmed before the duplicate check so " Dune " and "Dune" collide
        book_name = clean(payload.book_name)
        author = clean(payload.author)

        # Application-level check only; there is no unique index on (book_name, author)
        existing = db.scalars(
            select(Book.id).where(Book.book_name == book_name, Book.author == author)
        ).first()
        if existing is not None:
            raise ConflictError(DUPLICATE_BOOK_MESSAGE)

        book = Book(
            user_id=creator_id,
            book_name=book_name,
            author=author,
            description=clean(payload.description) or "",
        )
        with store_errors(db):
            db.add(book)
            db.commit()
        # Re-read so the joined creator is loaded into the response
        return BookService._get(db, book.id, refresh=True)

    @staticmethod
    def update_book(db: Session, book_id: str, payload: BookUpdateRequest) -> Book:
        key = parse_id(book_id, "book")
        fields = payload.model_dump(exclude_unset=True, exclude_none=True)

        updates = {}
        if "book_name" in fields:
            updates["book_name"] = clean(fields["book_name"])
            if not updates["book_name"]:
                raise ValidationError("Book name cannot be empty")
        if "author" in fields:
            updates["author"] = clean(fields["author"])
            if not updates["author"]:
                raise ValidationError("Author cannot be empty")
        if "description" in fields:
            updates["description"] = clean(fields["description"])

        # Validate every field before loading, so a bad body never reads the store
        book = BookService._get(db, key)
        for field, value in updates.items():
            setattr(book, field, value)
        with store_errors(db):
            db.commit()
        return BookService._get(db, key, refresh=True)

    @staticmethod
    def delete_book(db: Session, book_id: str) -> None:
        book = BookService._get(db, parse_id(book_id, "book"))
        with store_errors(db):
            db.delete(book)
            db.commit()

    @staticmethod
    def count_books(db: Session) -> int:
        return db.scalar(select(func.count()).select_from(Book)) or 0

    @staticmethod
    def _get(db: Session, key: str, refresh: bool = False) -> Book:
        book = db.get(Book, key, populate_existing=refresh)
        if book is None:
            raise NotFoundError(BOOK_NOT_FOUND_MESSAGE)
        return book


book_service = BookService()
