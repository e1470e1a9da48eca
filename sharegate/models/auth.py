"""
Authentication Models
The authenticated principal handed to services by the API layer
"""

import uuid

from pydantic import BaseModel, Field, field_validator


class Principal(BaseModel):
    """Identity already authenticated by the identity provider"""

    id: uuid.UUID
    email: str = Field(..., min_length=3, max_length=255)
    session_id: str = Field(..., min_length=1, max_length=255)

    model_config = {"frozen": True}

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()
