from fastapi import APIRouter, Depends

from insight_api.core.dependencies import get_ai_clients
from insight_api.schemas.ai import ThumbnailRequest
from insight_api.services.ai.common.router import GenerationClientFactory
from insight_api.services.ai.tools.service import generate_thumbnail

router = APIRouter()


@router.post("/generate")
async def generate_thumbnail_route(
    payload: ThumbnailRequest,
    clients: GenerationClientFactory = Depends(get_ai_clients),
):
    image, caption = await generate_thumbnail(clients, payload.image_base64, payload.prompt)
    return {
        "success": True,
        "tool": "Gemini Image",
        "output": {
            "image": image,
            "caption": caption,
            "thumbnailText": payload.thumbnail_text,
        },
    }
