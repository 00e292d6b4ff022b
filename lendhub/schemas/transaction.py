"""Transaction request/response schemas."""

from datetime import datetime

from pydantic import BaseModel

from lendhub.db.models.enums import TransactionStatus


class TransactionCreate(BaseModel):
    item_id: int


class TransactionResponse(BaseModel):
    id: int
    item_id: int
    requestor_id: int
    status: TransactionStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
