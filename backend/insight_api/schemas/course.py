from typing import Any, Dict, Optional, Union

from pydantic import ConfigDict, Field

from .base import CamelModel


class CourseGenerateRequest(CamelModel):
    """Free-form course form; every extra field is passed to the model as user input."""

    model_config = ConfigDict(extra="allow")

    course_id: Optional[str] = None
    email: Optional[str] = None

    def form_data(self) -> Dict[str, Any]:
        data = dict(self.model_extra or {})
        data.pop("email", None)
        return data


class CourseContentRequest(CamelModel):
    course_json: Union[Dict[str, Any], str]
    course_title: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    include_video: Optional[bool] = None
    chapter_index: Optional[int] = Field(default=None, ge=0)


class CourseOut(CamelModel):
    id: int
    cid: str
    name: Optional[str] = None
    description: Optional[str] = None
    no_of_chapters: int
    include_video: Optional[bool] = False
    level: str
    category: Optional[str] = None
    course_json: Optional[Any] = None
    user_email: str
    banner_image_url: Optional[str] = Field(default="", alias="bannerImageURL")
    course_content: Optional[Any] = None


class EnrollRequest(CamelModel):
    course_id: str = Field(..., min_length=1)
    user_id: int = Field(..., ge=1)


class EnrollmentOut(CamelModel):
    id: int
    course_id: str
    user_email: str
    completed_chapters: Optional[Any] = None


class ProgressUpdate(CamelModel):
    user_id: int = Field(..., ge=1)
    course_id: str = Field(..., min_length=1)
    chapter_index: int = Field(..., ge=0)
    topic_index: int = Field(..., ge=0)
    completed: bool = False


class ProgressBulkUpdate(CamelModel):
    user_id: int = Field(..., ge=1)
    course_id: str = Field(..., min_length=1)
    completed_topics: Dict[str, bool]
