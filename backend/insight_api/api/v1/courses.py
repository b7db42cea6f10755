import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from insight_api.core.auth import CurrentUser, get_optional_user
from insight_api.core.dependencies import get_ai_clients, get_db
from insight_api.models.course import User
from insight_api.schemas.course import CourseContentRequest, CourseGenerateRequest, CourseOut
from insight_api.services.ai.common.router import GenerationClientFactory
from insight_api.services.ai.course_content.service import generate_course_content
from insight_api.services.ai.course_layout.service import generate_course_layout
from insight_api.services.banner import fetch_course_banner
from insight_api.services.course_service import (
    create_course,
    get_course_or_404,
    list_generated_courses,
    list_user_courses,
    new_course_id,
    user_email_for_id,
)

logger = logging.getLogger(__name__)

router = APIRouter()
content_router = APIRouter()
listing_router = APIRouter()


def _course_json(course) -> dict:
    return CourseOut.model_validate(course).to_json()


@router.post("/generate")
async def generate_course(
    payload: CourseGenerateRequest,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    clients: GenerationClientFactory = Depends(get_ai_clients),
):
    email = current_user.email if current_user else (payload.email or "").strip().lower()
    if not email:
        raise HTTPException(401, "Unauthorized")
    if not db.query(User).filter(User.email == email).first():
        raise HTTPException(404, "User not found")

    course_id = payload.course_id or new_course_id()
    layout, course_json = await generate_course_layout(clients, payload.form_data())
    banner_url = await fetch_course_banner(course_json["course"])

    create_course(
        db,
        cid=course_id,
        user_email=email,
        layout=layout,
        course_json=course_json,
        banner_image_url=banner_url,
    )
    return {"success": True, "courseId": course_id}


@content_router.post("")
async def generate_content(
    payload: CourseContentRequest,
    db: Session = Depends(get_db),
    clients: GenerationClientFactory = Depends(get_ai_clients),
):
    content = await generate_course_content(
        db,
        clients,
        course_id=payload.course_id,
        course_json=payload.course_json,
        include_video=payload.include_video,
        chapter_index=payload.chapter_index,
    )
    return {"courseName": payload.course_title, "CourseContent": content}


@content_router.get("")
def get_content(courseId: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    course = get_course_or_404(db, courseId)
    return {"courseName": course.name, "CourseContent": course.course_content}


@listing_router.get("")
def get_courses(
    courseId: Optional[str] = None,
    userId: Optional[int] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    if courseId == "0":
        courses = list_generated_courses(db, search)
        logger.info("Fetched %d generated course(s)", len(courses))
        return [_course_json(c) for c in courses]

    if courseId:
        return _course_json(get_course_or_404(db, courseId))

    if not userId:
        raise HTTPException(400, "User ID is required to fetch user courses")
    email = user_email_for_id(db, userId)
    return [_course_json(c) for c in list_user_courses(db, email)]
