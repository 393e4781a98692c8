"""Merchant schemas."""
from pydantic import BaseModel, ConfigDict


class MerchantResponse(BaseModel):
    code: str
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)
