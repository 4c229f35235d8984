"""
User language preference schemas.
"""

from pydantic import BaseModel, ConfigDict


class UserPreferenceResponse(BaseModel):
    """A user's preferred translation language."""

    model_config = ConfigDict(from_attributes=True)

    language: str | None = None
    enabled: bool = True

