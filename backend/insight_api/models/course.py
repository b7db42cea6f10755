from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

JSON_TYPE = JSON().with_variant(JSONB, "postgresql")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    photo = Column(String(255))
    reset_otp = Column("resetOtp", String(6))
    reset_otp_expires = Column("resetOtpExpires", DateTime(timezone=True))
    reset_otp_attempts = Column("resetOtpAttempts", Integer, nullable=False, server_default=text("0"), default=0)
    is_verified = Column("isVerified", Boolean, server_default=text("false"), default=False)


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cid = Column(String(255), nullable=False, unique=True)
    name = Column(String)
    description = Column(String)
    no_of_chapters = Column("noOfChapters", Integer, nullable=False)
    include_video = Column("includeVideo", Boolean, server_default=text("false"), default=False)
    level = Column(String, nullable=False)
    category = Column(String)
    course_json = Column("courseJson", JSON_TYPE)
    user_email = Column("userEmail", String, ForeignKey("users.email"), nullable=False)
    banner_image_url = Column("bannerImageURL", Text, server_default=text("''"), default="")
    course_content = Column("courseContent", JSON_TYPE)

    __table_args__ = (Index("idx_courses_user_email", "userEmail"),)


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column("courseId", String(255), ForeignKey("courses.cid"), nullable=False)
    user_email = Column("userEmail", String, ForeignKey("users.email"), nullable=False)
    completed_chapters = Column("completedChapters", JSON_TYPE)

    __table_args__ = (UniqueConstraint("userEmail", "courseId", name="uq_enrollments_user_course"),)


class QuizHistory(Base):
    __tablename__ = "quiz_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column("userEmail", String, ForeignKey("users.email"), nullable=False)
    topic = Column(String, nullable=False)
    score = Column(Integer, nullable=False)
    total_questions = Column("totalQuestions", Integer, nullable=False)
    date = Column(String, nullable=False)

    __table_args__ = (Index("idx_quiz_history_user_email", "userEmail"),)


class UserPdf(Base):
    __tablename__ = "user_pdfs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String(255), ForeignKey("users.email"), nullable=False)
    file_name = Column(String(255), nullable=False)
    pdf_text = Column(Text, nullable=False)
    uploaded_at = Column(String(50), nullable=False)


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic = Column(String, nullable=False)
    description = Column(String, nullable=False)
    author_name = Column("authorName", String, nullable=False)
    author_email = Column("authorEmail", String, nullable=False)
    file_url = Column("fileUrl", String, nullable=False)
    file_name = Column("fileName", String, nullable=False)
    date = Column(String, nullable=False)
    views = Column(Integer, server_default=text("0"), default=0)
