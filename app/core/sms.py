import logging
import secrets
from typing import Mapping, Optional

import httpx
from twilio.base.exceptions import TwilioException
from twilio.http import HttpClient
from twilio.http.response import Response
from twilio.request_validator import RequestValidator
from twilio.rest import Client
from twilio.twiml.messaging_response import MessagingResponse

from app.core.config import Settings

logger = logging.getLogger(__name__)


class HttpxTwilioClient(HttpClient):
    """Runs the Twilio SDK's REST calls over httpx."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None, timeout: float = 10.0):
        super().__init__(logger, False, timeout=timeout)
        self._transport = transport

    def request(
        self,
        method,
        uri,
        params=None,
        data=None,
        headers=None,
        auth=None,
        timeout=None,
        allow_redirects=False,
        **kwargs,
    ) -> Response:
        with httpx.Client(timeout=timeout or self.timeout, transport=self._transport) as client:
            resp = client.request(
                method.upper(),
                uri,
                params=params,
                data=data,
                headers=headers,
                auth=auth,
                follow_redirects=allow_redirects,
            )
        return Response(resp.status_code, resp.text, resp.headers)


class SmsClient:
    """
    Wrapper over the Twilio SDK.

    send() never raises: a missing configuration, a Twilio API error or a
    transport error is logged and reported as False.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self._auth_token = settings.TWILIO_AUTH_TOKEN
        self._from_number = settings.TWILIO_PHONE_NUMBER
        self._client: Optional[Client] = None

        if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER:
            self._client = Client(
                settings.TWILIO_ACCOUNT_SID,
                settings.TWILIO_AUTH_TOKEN,
                http_client=HttpxTwilioClient(transport),
            )
        else:
            logger.warning("Twilio credentials not configured. SMS features will be disabled.")

    @property
    def configured(self) -> bool:
        return self._client is not None

    def send(self, to: str, body: str) -> bool:
        if self._client is None:
            logger.error("Twilio client not initialized, dropping SMS to %s", to)
            return False

        try:
            self._client.messages.create(to=to, from_=self._from_number, body=body)
        except (TwilioException, httpx.HTTPError) as e:
            logger.error("Failed to send SMS: %s", e)
            return False
        return True

    def validate_signature(self, url: str, params: Mapping[str, str], signature: Optional[str]) -> bool:
        """Check X-Twilio-Signature. Always passes when no auth token is configured."""
        if not self._auth_token:
            return True
        if not signature:
            return False
        return RequestValidator(self._auth_token).validate(url, dict(params), signature)


def twiml_response(message: Optional[str]) -> str:
    response = MessagingResponse()
    if message:
        response.message(message)
    return str(response)


def generate_code() -> str:
    """Random 6-digit verification code."""
    return str(100000 + secrets.randbelow(900000))
