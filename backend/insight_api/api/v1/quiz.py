import json

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from insight_api.core.dependencies import get_ai_clients, get_db
from insight_api.models.course import QuizHistory
from insight_api.schemas.learning import QuizHistoryOut, QuizRequest, QuizResultCreate
from insight_api.services.ai.common.router import GenerationClientFactory
from insight_api.services.ai.quiz.service import generate_quiz

router = APIRouter()


@router.post("")
async def create_quiz(payload: QuizRequest, clients: GenerationClientFactory = Depends(get_ai_clients)):
    questions = await generate_quiz(clients, payload.topic, payload.num_questions)
    # The web client parses the quiz itself, so it is sent as a JSON string.
    return {"quiz": json.dumps(questions, ensure_ascii=False)}


@router.post("/save-result")
def save_result(payload: QuizResultCreate, db: Session = Depends(get_db)):
    row = QuizHistory(
        user_email=payload.user_email.strip().lower(),
        topic=payload.topic,
        score=payload.score,
        total_questions=payload.total_questions,
        date=payload.date,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"success": True, "result": QuizHistoryOut.model_validate(row).to_json()}


@router.get("/history/{email}")
def quiz_history(email: str, db: Session = Depends(get_db)):
    rows = (
        db.query(QuizHistory)
        .filter(QuizHistory.user_email == email.strip().lower())
        .order_by(QuizHistory.id.desc())
        .all()
    )
    return {"history": [QuizHistoryOut.model_validate(r).to_json() for r in rows]}
