from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from insight_api.core.dependencies import get_db
from insight_api.models.course import Course, Enrollment
from insight_api.schemas.course import (
    CourseOut,
    EnrollmentOut,
    EnrollRequest,
    ProgressBulkUpdate,
    ProgressUpdate,
)
from insight_api.services.course_service import (
    completed_topics,
    find_enrollment,
    get_course_or_404,
    get_enrollment_or_404,
    set_topic_completed,
    user_email_for_id,
)

router = APIRouter()
progress_router = APIRouter()


@router.post("")
def enroll(payload: EnrollRequest, db: Session = Depends(get_db)):
    user_email = user_email_for_id(db, payload.user_id)
    get_course_or_404(db, payload.course_id)

    if find_enrollment(db, user_email, payload.course_id):
        return {"message": "Already enrolled in this course"}

    enrollment = Enrollment(user_email=user_email, course_id=payload.course_id, completed_chapters={})
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return [EnrollmentOut.model_validate(enrollment).to_json()]


@router.get("")
def enrolled_courses(
    userId: int = Query(..., ge=1),
    courseId: Optional[str] = None,
    db: Session = Depends(get_db),
):
    user_email = user_email_for_id(db, userId)
    query = (
        db.query(Course, Enrollment)
        .join(Enrollment, Course.cid == Enrollment.course_id)
        .filter(Enrollment.user_email == user_email)
    )
    if courseId:
        query = query.filter(Enrollment.course_id == courseId)

    return [
        {
            "courses": CourseOut.model_validate(course).to_json(),
            "enrollments": EnrollmentOut.model_validate(enrollment).to_json(),
        }
        for course, enrollment in query.order_by(Enrollment.id.desc()).all()
    ]


@progress_router.get("")
def get_progress(
    userId: int = Query(..., ge=1),
    courseId: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    enrollment = get_enrollment_or_404(db, user_email_for_id(db, userId), courseId)
    return {
        "enrollmentId": enrollment.id,
        "courseId": enrollment.course_id,
        "completedTopics": completed_topics(enrollment),
    }


@progress_router.post("")
def update_progress(payload: ProgressUpdate, db: Session = Depends(get_db)):
    enrollment = get_enrollment_or_404(db, user_email_for_id(db, payload.user_id), payload.course_id)
    topics = set_topic_completed(db, enrollment, payload.chapter_index, payload.topic_index, payload.completed)
    return {"success": True, "enrollmentId": enrollment.id, "completedTopics": topics}


@progress_router.post("/bulk")
def bulk_update_progress(payload: ProgressBulkUpdate, db: Session = Depends(get_db)):
    enrollment = get_enrollment_or_404(db, user_email_for_id(db, payload.user_id), payload.course_id)
    enrollment.completed_chapters = {k: True for k, v in payload.completed_topics.items() if v}
    db.commit()
    return {"success": True, "enrollmentId": enrollment.id, "completedTopics": enrollment.completed_chapters}
