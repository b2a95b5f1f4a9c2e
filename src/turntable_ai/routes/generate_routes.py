"""Marketing copy generation routes"""
import logging
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse
from turntable_ai.services.database import get_style_guide
from turntable_ai.services.llm_services import LLMConfigError, generate_quick_copy, generate_social_content
from turntable_ai.services.utils.http_utils import read_json_body
from turntable_ai.services.utils.session_management import get_optional_user

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["generate"])


@router.get("/generate")
async def generate_health():
    return JSONResponse(content={"ok": True, "status": "alive"})


@router.post("/generate")
async def generate(request: Request):
    """Short social post for a single request"""
    _logger.info("Generate Endpoint Hit")
    body = await read_json_body(request)
    prompt = body.get("request")
    if not isinstance(prompt, str) or not prompt.strip():
        raise HTTPException(status_code=400, detail='Please include a non-empty "request" string.')

    try:
        result = generate_quick_copy(
            prompt,
            platform=body.get("platform") or "Instagram",
            style=body.get("style") or "Friendly",
        )
        return JSONResponse(content={"ok": True, "result": result})
    except LLMConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        _logger.error(f"Error in generate: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Server error")


@router.post("/generate-social")
async def generate_social(request: Request):
    """Three caption / reel variants, in the saved brand voice when available"""
    _logger.info("Generate Social Endpoint Hit")
    body = await read_json_body(request)
    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise HTTPException(status_code=400, detail="Please describe what you want.")

    style_guide = None
    user = await get_optional_user(request)
    if user:
        style_guide = get_style_guide(user.id)

    try:
        output = generate_social_content(
            prompt.strip(),
            mode=body.get("mode") or "both",
            tone=body.get("tone") or "Friendly",
            platform=body.get("platform") or "Instagram",
            city=body.get("city") or "San Diego",
            length=body.get("length") or "medium",
            brand=body.get("brand") or "",
            cuisine=body.get("cuisine") or "",
            special=body.get("special") or "",
            language=body.get("language") or "English",
            style_guide=style_guide,
        )
        return JSONResponse(content={"output": output})
    except LLMConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        _logger.error(f"Error in generate_social: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Server error")
