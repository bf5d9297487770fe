from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class ChannelBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    topic: str | None = Field(None, max_length=500)


class ChannelCreate(ChannelBase):
    category_id: int | None = None

    @field_validator("name")
    @classmethod
    def name_lowercase_alphanumeric(cls, v: str) -> str:
        if not v.replace("-", "").isalnum():
            raise ValueError("Channel name must be alphanumeric with optional hyphens")
        return v.lower()


class ChannelResponse(ChannelBase):
    id: int
    server_id: int
    category_id: int | None = None
    position: int = 0
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ChannelPosition(BaseModel):
    """One row of a channel reorder batch.

    A reorder always carries every channel of the server, so the batch alone
    describes the full ordering.
    """

    channel_id: int
    position: int = Field(..., ge=0)
    category_id: int | None = None


class ChannelReorder(BaseModel):
    channels: list[ChannelPosition]
