# identity_api/application/dtos/base_dto.py

"""
Base class for custom DTOs.

This module defines the CustomBaseModel class that extends
Pydantic's BaseModel with behaviour shared by every DTO of the application.
"""

from pydantic import BaseModel, ConfigDict
from typing import Any, Dict


class CustomBaseModel(BaseModel):
    """
    Custom base model for all application DTOs.

    Omits fields whose value is None when serialized, so optional
    enrichment fields disappear from responses instead of rendering as null.
    """

    model_config = ConfigDict(from_attributes=True)

    def model_dump(self, *args, **kwargs) -> Dict[str, Any]:
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(*args, **kwargs)
