import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_container
from app.core.container import Container
from app.core.sms import twiml_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sms", tags=["sms"])


@router.post("/incoming")
async def incoming_sms(request: Request, container: Container = Depends(get_container)):
    """
    Twilio inbound webhook. Classifies the message body and answers with a
    TwiML reply; the reply never signals an HTTP error for bad input.
    """
    form = await request.form()
    params = {k: str(v) for k, v in form.items()}

    if container.settings.ENVIRONMENT == "production":
        signature = request.headers.get("x-twilio-signature")
        if not container.sms.validate_signature(str(request.url), params, signature):
            raise HTTPException(status_code=403, detail="Invalid signature")

    body = params.get("Body", "")
    logger.info("SMS received from %s: %s", params.get("From", ""), body)

    reply = await run_in_threadpool(container.messages.handle, body)
    return Response(content=twiml_response(reply), media_type="text/xml")
