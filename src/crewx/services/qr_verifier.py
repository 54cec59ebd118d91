"""Payment QR image verification.

Uploaded payment QR images are checked by an external image classifier before
they are stored on an account. Any reply other than an exact ``YES``, and any
failure talking to the classifier, counts as a rejection.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Protocol
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from crewx.config import Settings, get_settings
from crewx.exceptions import NotFoundError, QrRejectedError, ValidationError
from crewx.records import AccountRecord
from crewx.store import DataStore

logger = logging.getLogger(__name__)

QR_PROMPT = "Examine this image. Is it a clear UPI/Payment QR code? Answer only 'YES' or 'NO'."

ALLOWED_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp", "image/gif"})


class QrVerifier(Protocol):
    """Decides whether an image is a usable payment QR code."""

    async def is_payment_qr(self, image: bytes, mime_type: str) -> bool:
        ...


class GeminiQrVerifier:
    """Asks a Gemini model the fixed yes/no question about the image."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> GeminiQrVerifier:
        settings = settings or get_settings()
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.qr_verify_timeout_seconds,
        )

    def _payload(self, image: bytes, mime_type: str) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {
                            "inlineData": {
                                "mimeType": mime_type,
                                "data": base64.b64encode(image).decode("ascii"),
                            }
                        },
                        {"text": QR_PROMPT},
                    ]
                }
            ]
        }

    @staticmethod
    def _reply_text(body: dict[str, Any]) -> str:
        candidates = body.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    async def is_payment_qr(self, image: bytes, mime_type: str) -> bool:
        if not self.api_key:
            logger.warning("QR verification rejected: no classifier API key configured")
            return False

        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url,
                    json=self._payload(image, mime_type),
                    headers={"x-goog-api-key": self.api_key},
                )
                response.raise_for_status()
                reply = self._reply_text(response.json())
        except (httpx.HTTPError, ValueError, AttributeError, TypeError):
            logger.exception("QR verification request failed")
            return False

        accepted = reply.strip().upper() == "YES"
        logger.info("QR classifier replied %r (accepted=%s)", reply.strip()[:20], accepted)
        return accepted


def to_data_url(image: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


async def upload_payment_qr(
    session: AsyncSession,
    account_id: UUID,
    image: bytes,
    mime_type: str,
    verifier: QrVerifier,
) -> AccountRecord:
    """Verify an uploaded QR image and store it on the account as a data URL."""
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError("image", f"unsupported image type {mime_type!r}")
    if not image:
        raise ValidationError("image", "must not be empty")

    store = DataStore(session)
    if await store.accounts.get(account_id) is None:
        raise NotFoundError("Account", account_id)

    if not await verifier.is_payment_qr(image, mime_type):
        raise QrRejectedError("Image is not a clear payment QR code, please try again")

    updated = await store.accounts.update(account_id, qr_code=to_data_url(image, mime_type))
    if updated is None:
        raise NotFoundError("Account", account_id)
    await session.commit()
    logger.info("Stored payment QR for %s", account_id)
    return updated
