"""
AI helper router: prompt enhancement and voice transcription proxies.
"""
from fastapi import APIRouter, Depends, Request
import logging

from middleware.auth import get_current_user
from middleware.rate_limiting import limit
from services.prompt_enhancer_service import PromptEnhancerService
from services.transcription_service import TranscriptionService
from models.ai_tools import EnhancePromptRequest, EnhancePromptResponse, TranscribeRequest, TranscribeResponse
from models.user import CurrentUser
from utils.exceptions import StudioError, to_http_exception

router = APIRouter(tags=["ai-tools"])
logger = logging.getLogger(__name__)


def get_prompt_enhancer() -> PromptEnhancerService:
    return PromptEnhancerService()


def get_transcription_service() -> TranscriptionService:
    return TranscriptionService()


@router.post("/enhance-prompt", response_model=EnhancePromptResponse)
@limit("20/minute")
async def enhance_prompt(
    request: Request,
    payload: EnhancePromptRequest,
    current_user: CurrentUser = Depends(get_current_user),
    enhancer: PromptEnhancerService = Depends(get_prompt_enhancer)
):
    try:
        enhanced = await enhancer.enhance(payload.prompt)
    except StudioError as e:
        logger.warning(f"[AI-ROUTER] Prompt enhancement failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
    return EnhancePromptResponse(enhanced_prompt=enhanced)


@router.post("/transcribe", response_model=TranscribeResponse)
@limit("20/minute")
async def transcribe_audio(
    request: Request,
    payload: TranscribeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    transcriber: TranscriptionService = Depends(get_transcription_service)
):
    """Base64 webm audio in, transcribed text out (empty when nothing was recognised)."""
    try:
        text = await transcriber.transcribe(payload.audio)
    except StudioError as e:
        logger.warning(f"[AI-ROUTER] Transcription failed for {current_user.user_id}: {e}")
        raise to_http_exception(e)
    return TranscribeResponse(text=text)
