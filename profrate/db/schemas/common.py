from typing import Any
from pydantic import BaseModel, model_validator

from profrate.utils.validation import contains_null_byte


class InputModel(BaseModel):
    """Request body base: rejects any string field carrying a NUL byte."""

    @model_validator(mode="before")
    @classmethod
    def _reject_null_bytes(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, str) and contains_null_byte(value):
                    raise ValueError(f"{key} contains invalid characters")
        return data
