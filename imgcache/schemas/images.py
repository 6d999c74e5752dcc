"""
Request and response schemas for the image endpoint.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class TransformOptions(BaseModel):
    """Options accepted in the JSON body of an image request."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tallest_side: Optional[int] = Field(None, alias="tallestSide", gt=0)
    extension: Any = None  # unknown values fall back to avif
    return_image: bool = Field(False, alias="returnImage")


class ImageResult(BaseModel):
    """Schema for JSON responses."""
    hash: str
    filename: str
