import time
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

import jwt

from ..errors import InvalidTokenError

logger = logging.getLogger("openlearnhub.services.token_service")

ALGORITHM = "HS256"
# Password-based signup and login sessions last one hour.
SESSION_TTL = timedelta(hours=1)


class SessionTokenService:
    """
    Issues and verifies signed bearer tokens carrying a user id.
    No server-side state: validity depends on the signature and `exp` only.
    """

    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret:
            raise RuntimeError("JWT_SECRET is required to sign session tokens")
        self._secret = secret
        self._clock = clock

    def issue(self, uid: str, ttl: Optional[timedelta] = None) -> str:
        """Mint a token for `uid`. Without a ttl the token never expires."""
        issued_at = int(self._clock())
        payload: Dict[str, Any] = {"uid": uid, "iat": issued_at}
        if ttl is not None:
            payload["exp"] = issued_at + int(ttl.total_seconds())
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> Dict[str, Any]:
        """Return the verified claims or raise InvalidTokenError."""
        try:
            # Expiry is checked against our own clock below.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        uid = payload.get("uid")
        if not isinstance(uid, str) or not uid:
            raise InvalidTokenError("Invalid token: missing uid claim")

        exp = payload.get("exp")
        if exp is not None:
            if not isinstance(exp, (int, float)):
                raise InvalidTokenError("Invalid token: malformed exp claim")
            if self._clock() >= exp:
                raise InvalidTokenError("Token has expired")

        return payload

    def verify(self, token: str) -> str:
        return self.decode(token)["uid"]
