from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from insight_api.models.course import Course, Enrollment, User
from insight_api.services.ai.course_layout.contracts import CourseLayout

logger = logging.getLogger(__name__)


def new_course_id() -> str:
    return str(uuid.uuid4())


def create_course(
    db: Session,
    *,
    cid: str,
    user_email: str,
    layout: CourseLayout,
    course_json: dict[str, Any],
    banner_image_url: Optional[str],
) -> Course:
    if db.query(Course).filter(Course.cid == cid).first():
        raise HTTPException(409, "Course id already exists")

    course = Course(
        cid=cid,
        user_email=user_email,
        name=layout.name,
        description=layout.description,
        category=layout.category,
        level=layout.level,
        include_video=layout.include_video,
        no_of_chapters=layout.no_of_chapters,
        course_json=course_json,
        banner_image_url=banner_image_url or "",
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Course %s created for %s", cid, user_email)
    return course


def get_course_or_404(db: Session, cid: str) -> Course:
    course = db.query(Course).filter(Course.cid == cid).first()
    if not course:
        raise HTTPException(404, "Course not found")
    return course


def list_generated_courses(db: Session, search: Optional[str] = None) -> list[Course]:
    """Courses that already have chapter content, newest first."""
    rows = db.query(Course).order_by(Course.id.desc()).all()
    courses = [c for c in rows if c.course_content]
    if search:
        needle = search.lower()
        courses = [c for c in courses if needle in (c.name or "").lower()]
    return courses


def user_email_for_id(db: Session, user_id: int) -> str:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user.email


def list_user_courses(db: Session, user_email: str) -> list[Course]:
    return db.query(Course).filter(Course.user_email == user_email).order_by(Course.id.desc()).all()


def find_enrollment(db: Session, user_email: str, course_id: str) -> Optional[Enrollment]:
    return (
        db.query(Enrollment)
        .filter(Enrollment.user_email == user_email, Enrollment.course_id == course_id)
        .first()
    )


def get_enrollment_or_404(db: Session, user_email: str, course_id: str) -> Enrollment:
    enrollment = find_enrollment(db, user_email, course_id)
    if not enrollment:
        raise HTTPException(404, "Enrollment not found. Please enroll first.")
    return enrollment


def completed_topics(enrollment: Enrollment) -> dict[str, bool]:
    value = enrollment.completed_chapters
    # Early enrollments stored a list of chapter indexes.
    return dict(value) if isinstance(value, dict) else {}


def set_topic_completed(
    db: Session,
    enrollment: Enrollment,
    chapter_index: int,
    topic_index: int,
    completed: bool,
) -> dict[str, bool]:
    topics = completed_topics(enrollment)
    key = f"{chapter_index}-{topic_index}"
    if completed:
        topics[key] = True
    else:
        topics.pop(key, None)
    enrollment.completed_chapters = topics
    db.commit()
    return topics
