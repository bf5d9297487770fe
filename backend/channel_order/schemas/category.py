from datetime import datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryResponse(BaseModel):
    id: int
    server_id: int
    name: str
    position: int = 0
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class CategoryPosition(BaseModel):
    category_id: int
    position: int = Field(..., ge=0)


class CategoryReorder(BaseModel):
    categories: list[CategoryPosition]
