"""Shared base for models exchanged with the clinic API."""

from pydantic import BaseModel


class ApiModel(BaseModel):
    """
    Base model for API payloads.

    The backend speaks camelCase; attributes are snake_case with aliases.
    Unknown fields are ignored so backend additions don't break parsing.
    """

    class Config:
        populate_by_name = True
        extra = "ignore"

    def to_payload(self) -> dict:
        """Serialize for a request body (camelCase, no nulls)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
