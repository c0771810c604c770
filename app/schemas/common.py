import math
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True, "from_attributes": True}


class Pagination(APIModel):
    page: int
    limit: int
    total: int
    total_pages: int = 0

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if total > 0 else 0)


class DataResponse(APIModel, Generic[T]):
    success: bool = True
    data: T
    message: str | None = None


class PageResponse(APIModel, Generic[T]):
    success: bool = True
    data: list[T]
    pagination: Pagination


class MessageResponse(APIModel):
    success: bool = True
    message: str
