from typing import Optional

from pydantic import Field

from .base import CamelModel


class ChatRequest(CamelModel):
    message: str = Field(..., min_length=1)


class GenerateImageRequest(CamelModel):
    prompt: str = Field(..., min_length=1, max_length=2000)


class GrammarCheckRequest(CamelModel):
    text: str = Field(..., min_length=1)


class ImageToTextRequest(CamelModel):
    image_base64: str = Field(..., min_length=1)
    prompt: Optional[str] = None


class SummarizeRequest(CamelModel):
    video_url: str = Field(..., min_length=1)


class ThumbnailRequest(CamelModel):
    prompt: str = Field(..., min_length=1, max_length=2000)
    image_base64: str = Field(..., min_length=1)
    thumbnail_text: Optional[str] = Field(default=None, max_length=200)
