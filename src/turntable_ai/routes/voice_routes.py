"""Brand voice profile routes"""
import logging
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse
from turntable_ai.model.User import User
from turntable_ai.services.database import delete_voice_profile, get_voice_profile, upsert_voice_profile
from turntable_ai.services.llm_services import LLMConfigError, build_style_guide
from turntable_ai.services.utils.http_utils import read_json_body
from turntable_ai.services.utils.session_management import get_optional_user

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/voice-profile", tags=["voice"])

MIN_SAMPLES = 3


async def _require_user(request: Request) -> User:
    user = await get_optional_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


@router.get("")
async def read_voice_profile(request: Request):
    user = await _require_user(request)
    return JSONResponse(content={"profile": get_voice_profile(user.id)})


@router.post("")
async def create_voice_profile(request: Request):
    """Build a style guide from writing samples and store it with them"""
    _logger.info("Voice Profile Endpoint Hit")
    user = await _require_user(request)
    body = await read_json_body(request)
    samples = body.get("samples")
    if not isinstance(samples, list):
        samples = []
    samples = [s for s in samples if isinstance(s, str) and s.strip()]

    if len(samples) < MIN_SAMPLES:
        raise HTTPException(status_code=400, detail="Please provide at least 3 samples.")

    try:
        style_guide = build_style_guide(samples)
        profile = upsert_voice_profile(user.id, samples, style_guide)
        return JSONResponse(content={"profile": profile})
    except LLMConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        _logger.error(f"Error in create_voice_profile: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build style guide")


@router.delete("")
async def remove_voice_profile(request: Request):
    user = await _require_user(request)
    delete_voice_profile(user.id)
    return JSONResponse(content={"ok": True})
