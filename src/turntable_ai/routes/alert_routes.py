"""Ad-hoc alert emails"""
import logging
from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse
from turntable_ai.services.email_services import send_email
from turntable_ai.services.utils.http_utils import read_json_body

_logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["alerts"])


@router.post("/alerts")
async def send_alert(request: Request):
    _logger.info("Send Alert Endpoint Hit")
    body = await read_json_body(request)
    to = body.get("to")
    subject = body.get("subject")
    if not to or not subject:
        raise HTTPException(status_code=400, detail='Missing "to" or "subject"')

    try:
        send_email(
            to=to,
            subject=subject,
            html=body.get("html"),
            text=body.get("text") or ("(no text)" if body.get("html") is None else None),
        )
        return JSONResponse(content={"ok": True})
    except Exception as e:
        _logger.error(f"Email send error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Failed to send alert")
