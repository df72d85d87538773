"""Gate controlling whether AI title generation may be invoked."""

from __future__ import annotations

import hmac
import logging
from enum import Enum

from video_exporter.core.config import settings
from video_exporter.services.errors import AiLockedError

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class AiUnlockGate:
    """Locked until a shared secret or a plausible API key is presented.

    Unlocking is one-way for the lifetime of the gate.
    """

    def __init__(self, secret: str | None = None, key_prefix: str | None = None) -> None:
        self._secret = secret
        self._key_prefix = key_prefix
        self.state = GateState.LOCKED
        self.user_api_key: str | None = None

    @property
    def unlocked(self) -> bool:
        return self.state is GateState.UNLOCKED

    def unlock_with_secret(self, candidate: str | None) -> bool:
        secret = self._secret if self._secret is not None else settings.ai_unlock_secret
        if not secret or not candidate:
            return self.unlocked
        if hmac.compare_digest(candidate.encode(), secret.encode()):
            self.state = GateState.UNLOCKED
            logger.info("AI gate unlocked with shared secret")
        return self.unlocked

    def unlock_with_api_key(self, api_key: str | None) -> bool:
        prefix = self._key_prefix if self._key_prefix is not None else settings.openai_key_prefix
        key = (api_key or "").strip()
        if not key or not key.startswith(prefix) or len(key) <= len(prefix):
            return self.unlocked
        self.user_api_key = key
        self.state = GateState.UNLOCKED
        logger.info("AI gate unlocked with user API key")
        return self.unlocked

    def require_unlocked(self) -> None:
        if not self.unlocked:
            raise AiLockedError("AI title generation is locked. Unlock it first.")
