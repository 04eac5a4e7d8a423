"""
AI Service Client
Proxies free-text chat messages to the external NLU service, which classifies
them as an expense record or a spending query.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

USER_AGENT = "Trackaro-Backend/1.0"


@dataclass
class AIResult:
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    status_code: Optional[int] = None


class AIClient:
    def __init__(
        self,
        service_url: Optional[str] = None,
        timeout: Optional[float] = None,
        probe_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.service_url = service_url or settings.AI_SERVICE_URL
        self.timeout = timeout if timeout is not None else settings.AI_SERVICE_TIMEOUT
        self.probe_timeout = probe_timeout if probe_timeout is not None else settings.AI_SERVICE_PROBE_TIMEOUT
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            transport=self._transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
        )

    async def process_message(self, text: str, user_id: str) -> AIResult:
        """
        Send the user's message to the AI service.

        Args:
            text: The user's message
            user_id: Owner of the message

        Returns:
            AIResult: ``data`` holds the decoded service response on success
        """
        try:
            async with self._client(self.timeout) as client:
                response = await client.post(self.service_url, json={"text": text, "user_id": user_id})
                response.raise_for_status()
                payload = response.json()
            logger.info(f"AI service responded with status {response.status_code}")
            return AIResult(success=True, data=payload, status_code=response.status_code)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"AI service returned error {status_code}: {e.response.text}")
            return AIResult(
                success=False,
                error="AI service error",
                message=_error_detail(e.response) or f"AI service returned error {status_code}",
                status_code=status_code,
            )
        except httpx.RequestError as e:
            logger.error(f"AI service unavailable: {str(e)}")
            return AIResult(
                success=False,
                error="AI service unavailable",
                message="Unable to connect to AI service",
            )
        except ValueError as e:
            logger.error(f"AI service returned a non-JSON body: {str(e)}")
            return AIResult(success=False, error="Request error", message=str(e))

    async def test_connection(self) -> dict:
        try:
            async with self._client(self.probe_timeout) as client:
                response = await client.post(
                    self.service_url,
                    json={"text": "test connection", "user_id": "test-user-id"},
                )
                response.raise_for_status()
                body = response.json()
            return {
                "success": True,
                "message": "AI service is reachable",
                "status": response.status_code,
                "responseType": body.get("type", "unknown") if isinstance(body, dict) else "unknown",
            }
        except (httpx.HTTPError, ValueError) as e:
            status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
            return {
                "success": False,
                "message": "AI service is not reachable",
                "error": str(e),
                "statusCode": status_code,
            }

    @staticmethod
    def validate_response(payload: Any) -> bool:
        if not isinstance(payload, dict):
            return False
        if not payload.get("type") or not payload.get("message"):
            return False

        data = payload.get("data")
        if payload["type"] == "expense":
            if not isinstance(data, dict):
                return False
            amount = data.get("amount")
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                return False
            if not math.isfinite(amount) or amount < 0:
                return False
            if not data.get("date") or not data.get("category"):
                return False
        elif payload["type"] == "query":
            if not data:
                return False
        return True

    @staticmethod
    def extract_reply(payload: dict) -> Optional[str]:
        """The service nests its text under ``message.output`` in some responses."""
        message = payload.get("message")
        if isinstance(message, dict) and message.get("output"):
            return str(message["output"])
        if isinstance(message, str):
            return message
        return None


def _error_detail(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("message") if isinstance(body, dict) else None


def get_ai_client() -> AIClient:
    return AIClient()
