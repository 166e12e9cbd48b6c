import hashlib
import hmac
import logging
import re
from typing import Any, Dict, Mapping

from models.subscription import OPT_IN, SubscriptionKey

logger = logging.getLogger("subscription_service")

SECONDS_IN_DAY = 86400

_SIGNATURE_REGEX = re.compile(r"^[0-9a-f]{64}$")


class ConfirmationToken:
    """
    Stateless opt-in token carried in the confirmation email's custom args.

    The provider echoes custom args back on every event for that email, so the
    token travels {type, timeSent, signature} alongside the subscription
    fields and is verified without any server-side storage.
    """

    def __init__(self, secret: str, window_seconds: int = SECONDS_IN_DAY):
        self.secret = secret.encode()
        self.window_seconds = window_seconds

    def sign(self, token_type: str, key: SubscriptionKey, time_sent: str) -> str:
        raw = f"{token_type}:{key.email}:{key.frequency.value}:{key.delegator_address}:{time_sent}"
        return hmac.new(self.secret, raw.encode(), hashlib.sha256).hexdigest()

    def issue(self, key: SubscriptionKey, now_ms: int) -> Dict[str, str]:
        time_sent = str(now_ms)
        return {
            "type": OPT_IN,
            "timeSent": time_sent,
            "signature": self.sign(OPT_IN, key, time_sent),
        }

    def is_valid(self, key: SubscriptionKey, metadata: Mapping[str, Any], now_ms: int) -> bool:
        """
        True when the metadata is an opt-in token for this subscription, its
        signature matches, and it was sent less than one window ago.
        """
        token_type = metadata.get("type")
        time_sent = metadata.get("timeSent")
        signature = metadata.get("signature")

        if token_type != OPT_IN or not time_sent:
            return False
        if not isinstance(signature, str) or not _SIGNATURE_REGEX.fullmatch(signature):
            return False

        try:
            elapsed = (now_ms - int(time_sent)) / 1000
        except (TypeError, ValueError):
            return False

        if not elapsed < self.window_seconds:
            return False

        expected = self.sign(str(token_type), key, str(time_sent))
        return hmac.compare_digest(expected.encode(), signature.encode())
