from typing import Optional

from pydantic import Field

from .base import CamelModel


class QuizRequest(CamelModel):
    topic: str = Field(..., min_length=1, max_length=500)
    num_questions: int = Field(default=5, ge=1, le=50)


class QuizResultCreate(CamelModel):
    user_email: str = Field(..., min_length=3)
    topic: str = Field(..., min_length=1)
    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    date: str = Field(..., min_length=1)


class QuizHistoryOut(CamelModel):
    id: int
    user_email: str
    topic: str
    score: int
    total_questions: int
    date: str


class ChatPdfRequest(CamelModel):
    pdf_id: int
    question: str = Field(..., min_length=1)
    user_email: Optional[str] = None


class PdfOut(CamelModel):
    id: int
    user_email: str
    file_name: str
    pdf_text: str
    uploaded_at: str


class ResourceCreate(CamelModel):
    topic: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    author_name: str = Field(..., min_length=1)
    author_email: str = Field(..., min_length=3)
    file_url: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)


class ResourceOut(CamelModel):
    id: int
    topic: str
    description: str
    author_name: str
    author_email: str
    file_url: str
    file_name: str
    date: str
    views: Optional[int] = 0
