from fastapi import APIRouter, Depends

from insight_api.core.dependencies import get_ai_clients
from insight_api.schemas.ai import GenerateImageRequest, GrammarCheckRequest, ImageToTextRequest
from insight_api.services.ai.common.router import GenerationClientFactory
from insight_api.services.ai.tools.service import check_grammar, generate_image, image_to_text

router = APIRouter()


@router.post("/generate-image")
async def generate_image_route(
    payload: GenerateImageRequest,
    clients: GenerationClientFactory = Depends(get_ai_clients),
):
    image = await generate_image(clients, payload.prompt)
    return {
        "success": True,
        "tool": "Pollinations Image API",
        "output": {"image": image, "caption": payload.prompt},
    }


@router.post("/grammar-check")
async def grammar_check(
    payload: GrammarCheckRequest,
    clients: GenerationClientFactory = Depends(get_ai_clients),
):
    original, corrected = await check_grammar(clients, payload.text)
    return {
        "success": True,
        "tool": "OpenRouter Grammar Checker",
        "original_text": original,
        "corrected_text": corrected,
    }


@router.post("/image-to-text")
async def image_to_text_route(
    payload: ImageToTextRequest,
    clients: GenerationClientFactory = Depends(get_ai_clients),
):
    text = await image_to_text(clients, payload.image_base64, payload.prompt)
    return {"success": True, "tool": "Image to Text (Vision)", "text": text}
