"""Request signing shared by the telephony webhooks."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from twilio.request_validator import RequestValidator

from .base import ChannelAdapter

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Twilio-Signature"


class TwilioWebhookAdapter(ChannelAdapter):
    """Checks ``X-Twilio-Signature`` when an account auth token is configured.

    Without a token every request is accepted, which keeps local development
    and tunnelled testing working.
    """

    _auth_token: str | None = None

    def verify_signature(
        self,
        url: str,
        params: Mapping[str, str],
        headers: Mapping[str, str],
    ) -> bool:
        if not self._auth_token:
            return True
        signature = headers.get(SIGNATURE_HEADER) or headers.get(SIGNATURE_HEADER.lower())
        if not signature:
            logger.warning("Rejecting %s webhook without a signature", self.channel_name)
            return False
        valid = RequestValidator(self._auth_token).validate(url, dict(params), signature)
        if not valid:
            logger.warning("Rejecting %s webhook with a bad signature for %s", self.channel_name, url)
        return valid
