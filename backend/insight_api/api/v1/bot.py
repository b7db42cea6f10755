from fastapi import APIRouter, Depends

from insight_api.core.dependencies import get_ai_clients
from insight_api.schemas.ai import ChatRequest
from insight_api.services.ai.chat.service import thinkbot_answer
from insight_api.services.ai.common.router import GenerationClientFactory

router = APIRouter()


@router.post("/chat")
async def chat(payload: ChatRequest, clients: GenerationClientFactory = Depends(get_ai_clients)):
    answer = await thinkbot_answer(clients, payload.message)
    return {"success": True, "data": {"answer": answer}}
