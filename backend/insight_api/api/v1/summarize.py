from fastapi import APIRouter, Depends

from insight_api.core.dependencies import get_ai_clients
from insight_api.schemas.ai import SummarizeRequest
from insight_api.services.ai.common.router import GenerationClientFactory
from insight_api.services.ai.summarize.service import summarize_video

router = APIRouter()


@router.post("/summarize")
async def summarize(payload: SummarizeRequest, clients: GenerationClientFactory = Depends(get_ai_clients)):
    summary = await summarize_video(clients, payload.video_url)
    return {"summary": summary}
