import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from insight_api.core.config import get_settings
from insight_api.core.dependencies import get_ai_clients, get_db
from insight_api.models.course import UserPdf
from insight_api.schemas.learning import ChatPdfRequest, PdfOut
from insight_api.services.ai.chat.service import chatpdf_answer
from insight_api.services.ai.common.router import GenerationClientFactory
from insight_api.services.pdf_text import PdfTextError, extract_pdf_text

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_pdf_for(db: Session, pdf_id: int, user_email: Optional[str]) -> UserPdf:
    row = db.get(UserPdf, pdf_id)
    if not row:
        raise HTTPException(404, "PDF not found")
    if user_email and row.user_email != user_email.strip().lower():
        raise HTTPException(403, "Unauthorized access")
    return row


@router.get("/list")
def list_pdfs(userEmail: str = Query(..., min_length=3), db: Session = Depends(get_db)):
    rows = (
        db.query(UserPdf)
        .filter(UserPdf.user_email == userEmail.strip().lower())
        .order_by(UserPdf.id.desc())
        .all()
    )
    return {"pdfs": [PdfOut.model_validate(r).to_json() for r in rows]}


@router.post("/upload")
async def upload_pdf(
    userEmail: str = Form(..., min_length=3),
    pdf: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    if pdf.content_type != "application/pdf":
        raise HTTPException(400, "Only PDF files allowed")

    data = await pdf.read()
    max_bytes = get_settings().pdf_max_upload_bytes
    if len(data) > max_bytes:
        raise HTTPException(413, f"PDF is larger than {max_bytes // (1024 * 1024)}MB")

    try:
        text = await asyncio.to_thread(extract_pdf_text, data)
    except PdfTextError as exc:
        raise HTTPException(400, str(exc)) from exc
    if not text:
        raise HTTPException(400, "PDF has no extractable text")

    row = UserPdf(
        user_email=userEmail.strip().lower(),
        file_name=pdf.filename or "document.pdf",
        pdf_text=text,
        uploaded_at=datetime.now(timezone.utc).isoformat(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Stored PDF %s (%d chars) for %s", row.id, len(text), row.user_email)
    return {"message": "PDF uploaded successfully", "pdf": PdfOut.model_validate(row).to_json()}


@router.post("/chat")
async def chat_with_pdf(
    payload: ChatPdfRequest,
    db: Session = Depends(get_db),
    clients: GenerationClientFactory = Depends(get_ai_clients),
):
    row = _get_pdf_for(db, payload.pdf_id, payload.user_email)
    answer = await chatpdf_answer(clients, row.pdf_text, payload.question)
    return {"answer": answer}


@router.delete("/delete/{pdf_id}")
def delete_pdf(
    pdf_id: int,
    userEmail: Optional[str] = None,
    body: Optional[dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
):
    owner = userEmail or (body or {}).get("userEmail")
    row = _get_pdf_for(db, pdf_id, owner)
    db.delete(row)
    db.commit()
    return {"message": "PDF deleted successfully"}
