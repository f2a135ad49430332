from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sschool.api.dependencies import get_db, get_page_params
from sschool.schemas.book import BookResponse
from sschool.schemas.common import Page
from sschool.services.book_service import book_service
from sschool.utils.pagination import PageParams

# Public catalog: no authentication on these routes
router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=Page[BookResponse])
async def list_books(
    search: Optional[str] = None,
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
):
    return book_service.list_books(db, params, search).to_dict()


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(book_id: str, db: Session = Depends(get_db)):
    return book_service.get_book(db, book_id)
