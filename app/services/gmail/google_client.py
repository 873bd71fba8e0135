"""
Gmail API client used as the communication-history provider.
Searches the mailbox and fetches From/To/Date metadata for each hit concurrently.
"""

import asyncio

from pydantic import BaseModel, Field, ValidationError

from app.infrastructure.observability.logging import get_logger
from app.models.domain.contact_domain import MessageHeaders
from app.services.infrastructure.google_http import GoogleApiClient, GoogleApiError

logger = get_logger(__name__)

GMAIL_API_BASE_URL = "https://gmail.googleapis.com/gmail/v1"
GMAIL_USER_ID = "me"
GMAIL_MAX_PAGE_SIZE = 500
METADATA_HEADERS = ["From", "To", "Date"]


class _MessageRef(BaseModel):
    id: str
    threadId: str | None = None


class _MessageListPayload(BaseModel):
    messages: list[_MessageRef] = Field(default_factory=list)
    resultSizeEstimate: int = 0


class _Header(BaseModel):
    name: str
    value: str = ""


class _MessagePart(BaseModel):
    headers: list[_Header] = Field(default_factory=list)


class _MessageMetadataPayload(BaseModel):
    id: str
    payload: _MessagePart = Field(default_factory=_MessagePart)


class GoogleGmailService(GoogleApiClient):
    """
    Gmail search over the authorized user's mailbox.

    Implements the communication-history provider: one list call, then one
    metadata call per message, issued concurrently and joined before returning.
    A message whose metadata cannot be fetched or parsed is logged and skipped,
    unless every message fails, which is reported as a provider error.
    """

    provider = "gmail"
    error_messages = {
        "403": "Gmail access denied. Please check permissions.",
        "404": "Email message not found.",
        "400": "Invalid Gmail request format.",
        "401": "Gmail authorization expired. Please reconnect.",
        "500": "Gmail service temporarily unavailable.",
    }

    async def search(self, user_id: str, query: str, max_results: int) -> list[MessageHeaders]:
        """
        Search messages and return their address headers.

        Args:
            user_id: Resolving user (only used for logging; Gmail scopes by token)
            query: Gmail search expression
            max_results: Cap on messages inspected

        Returns:
            list[MessageHeaders]: Headers of every message that could be read
        """
        message_ids = await self.list_message_ids(query, max_results)
        if not message_ids:
            logger.info("Gmail search returned no messages", user_id=user_id)
            return []

        results = await asyncio.gather(
            *(self.get_message_headers(message_id) for message_id in message_ids),
            return_exceptions=True,
        )

        headers = []
        failures: list[Exception] = []
        for message_id, result in zip(message_ids, results, strict=True):
            if isinstance(result, Exception):
                logger.warning(
                    "Skipping message with unreadable metadata",
                    message_id=message_id,
                    error=str(result),
                )
                failures.append(result)
                continue
            if isinstance(result, BaseException):
                raise result
            headers.append(result)

        if not headers:
            logger.error(
                "Gmail metadata unavailable for every match",
                user_id=user_id,
                matched=len(message_ids),
            )
            raise GoogleApiError(
                "Gmail metadata unavailable for every matched message", provider=self.provider
            ) from failures[0]

        logger.info(
            "Gmail history searched",
            user_id=user_id,
            matched=len(message_ids),
            parsed=len(headers),
        )
        return headers

    async def list_message_ids(self, query: str, max_results: int) -> list[str]:
        url = f"{GMAIL_API_BASE_URL}/users/{GMAIL_USER_ID}/messages"
        params = {"q": query, "maxResults": min(max_results, GMAIL_MAX_PAGE_SIZE)}

        data = await self._call("GET", url, "list_messages", params=params)
        try:
            payload = _MessageListPayload.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected Gmail list payload", error=str(e))
            raise self._invalid_payload("list_messages", e) from e

        return [ref.id for ref in payload.messages[:max_results]]

    async def get_message_headers(self, message_id: str) -> MessageHeaders:
        url = f"{GMAIL_API_BASE_URL}/users/{GMAIL_USER_ID}/messages/{message_id}"
        params = [("format", "metadata")] + [("metadataHeaders", h) for h in METADATA_HEADERS]

        data = await self._call("GET", url, "get_message", params=params)
        payload = _MessageMetadataPayload.model_validate(data)
        return MessageHeaders.from_raw(
            payload.id, {header.name: header.value for header in payload.payload.headers}
        )

    def _invalid_payload(self, operation: str, error: Exception) -> GoogleApiError:
        return GoogleApiError(
            f"Invalid Gmail {operation} payload: {error}", provider=self.provider
        )
