from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from sschool.schemas.common import CamelModel


class MaterialCreateRequest(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None


class MaterialOwner(CamelModel):
    id: str
    name: str
    email: str


class MaterialResponse(CamelModel):
    id: str
    title: str
    content: str
    owner: Optional[MaterialOwner] = Field(default=None, validation_alias=AliasChoices("owner", "userId"), serialization_alias="userId")
    created_at: datetime
    updated_at: Optional[datetime] = None


class MaterialMessageResponse(CamelModel):
    message: str
    material: MaterialResponse
