from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from sschool.models.user import Role
from sschool.schemas.common import CamelModel


class BookCreateRequest(CamelModel):
    book_name: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None


class BookUpdateRequest(CamelModel):
    book_name: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None


class BookOwner(CamelModel):
    id: str
    name: str
    email: str
    role: Role


class BookResponse(CamelModel):
    id: str
    book_name: str
    author: str
    description: str = ""
    # Populated creator, serialized under the reference's name
    owner: Optional[BookOwner] = Field(default=None, validation_alias=AliasChoices("owner", "userId"), serialization_alias="userId")
    created_at: datetime
    updated_at: Optional[datetime] = None


class BookMessageResponse(CamelModel):
    message: str
    book: BookResponse
