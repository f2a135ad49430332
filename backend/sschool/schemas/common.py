from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case names"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(BaseModel):
    message: str


class Page(CamelModel, Generic[T]):
    items: List[T]
    total_pages: int
    current_page: int
    total: int


class CountResponse(BaseModel):
    total: int
