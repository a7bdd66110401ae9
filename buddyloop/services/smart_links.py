"""
Smart Link Codec: shareable buddy-challenge URLs with campaign attribution.

URL shape
---------
  <base_url>/invite?code=BUDDY_<ts36>_<rand6>&from=<name>&fromId=<id>
      &subject=<subject>&sessionId=<id>&reward=<int>&challengeType=<type>
      &utm_source=buddy_challenge&utm_medium=share&utm_campaign=viral_loop

`decode` is total: malformed input yields None, never an exception. Only the
required parameters (code, from, subject, reward) can reject a link; a bad
optional `fromId` or an unknown `challengeType` decodes as None on that field.

The codec remembers the last ISSUED_CODE_MEMORY codes it handed out so a
collision within that window is regenerated. Older codes are forgotten.
"""
from __future__ import annotations

import re
import secrets
import string
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import parse_qs, urlencode, urlsplit


class ChallengeType:
    BEAT_SCORE       = "beat_score"
    COMPLETE_SUBJECT = "complete_subject"
    TIME_CHALLENGE   = "time_challenge"

    ALL = frozenset({BEAT_SCORE, COMPLETE_SUBJECT, TIME_CHALLENGE})


CAMPAIGN_ATTRIBUTION: dict[str, str] = {
    "utm_source": "buddy_challenge",
    "utm_medium": "share",
    "utm_campaign": "viral_loop",
}

DEFAULT_REWARD = 50
ISSUED_CODE_MEMORY = 10_000
CODE_PREFIX = "BUDDY"

_BASE36 = string.digits + string.ascii_uppercase
_REQUIRED_PARAMS = ("code", "from", "subject", "reward")
_INT_RE = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class ChallengeLink:
    code: str
    from_user_name: str
    subject: str
    reward_amount: int
    from_user_id: Optional[int] = None
    session_id: Optional[str] = None
    challenge_type: Optional[str] = None
    campaign: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Code generation
# ---------------------------------------------------------------------------

def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_invite_code() -> str:
    """BUDDY_<base36 ms timestamp>_<6 random base36 chars>, upper case."""
    stamp = _to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{CODE_PREFIX}_{stamp}_{suffix}"


def _param(params: dict[str, list[str]], name: str) -> Optional[str]:
    values = params.get(name)
    if not values:
        return None
    return values[0] or None


def _parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None or not _INT_RE.fullmatch(raw.strip()):
        return None
    try:
        return int(raw)
    except ValueError:
        # past the interpreter's int-string digit limit
        return None


def extract_code(url: str) -> Optional[str]:
    """Return the `code` query parameter of `url`, or None."""
    try:
        return _param(parse_qs(urlsplit(url).query), "code")
    except (TypeError, ValueError, AttributeError):
        return None


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

class SmartLinkCodec:

    def __init__(self, base_url: str, memory: int = ISSUED_CODE_MEMORY):
        self.base_url = base_url.rstrip("/")
        self._issued: set[str] = set()
        self._issued_order: deque[str] = deque()
        self._memory = memory

    def _unique_code(self) -> str:
        code = generate_invite_code()
        while code in self._issued:
            code = generate_invite_code()
        self._issued.add(code)
        self._issued_order.append(code)
        if len(self._issued_order) > self._memory:
            self._issued.discard(self._issued_order.popleft())
        return code

    def issue(
        self,
        session_id: str,
        sender_id: int,
        sender_name: str,
        subject: str,
        challenge_type: str = ChallengeType.BEAT_SCORE,
        reward_amount: int = DEFAULT_REWARD,
    ) -> tuple[str, ChallengeLink]:
        """Build a new link. Returns (url, the ChallengeLink it encodes)."""
        link = ChallengeLink(
            code=self._unique_code(),
            from_user_name=sender_name,
            subject=subject,
            reward_amount=reward_amount,
            from_user_id=sender_id,
            session_id=session_id,
            challenge_type=challenge_type,
            campaign=dict(CAMPAIGN_ATTRIBUTION),
        )
        params = {
            "code": link.code,
            "from": sender_name,
            "fromId": str(sender_id),
            "subject": subject,
            "sessionId": session_id,
            "reward": str(reward_amount),
            "challengeType": challenge_type,
            **CAMPAIGN_ATTRIBUTION,
        }
        return f"{self.base_url}/invite?{urlencode(params)}", link

    def encode(
        self,
        session_id: str,
        sender_id: int,
        sender_name: str,
        subject: str,
        challenge_type: str = ChallengeType.BEAT_SCORE,
        reward_amount: int = DEFAULT_REWARD,
    ) -> str:
        url, _ = self.issue(
            session_id, sender_id, sender_name, subject, challenge_type, reward_amount
        )
        return url

    def decode(self, url: Any) -> Optional[ChallengeLink]:
        if not isinstance(url, str) or not url:
            return None
        try:
            params = parse_qs(urlsplit(url).query, keep_blank_values=True)
        except ValueError:
            return None

        if any(_param(params, name) is None for name in _REQUIRED_PARAMS):
            return None

        reward = _parse_int(_param(params, "reward"))
        if reward is None or reward < 0:
            return None

        challenge_type = _param(params, "challengeType")
        if challenge_type not in ChallengeType.ALL:
            challenge_type = None

        return ChallengeLink(
            code=_param(params, "code"),
            from_user_name=_param(params, "from"),
            subject=_param(params, "subject"),
            reward_amount=reward,
            from_user_id=_parse_int(_param(params, "fromId")),
            session_id=_param(params, "sessionId"),
            challenge_type=challenge_type,
            campaign={
                name: params[name][0]
                for name in CAMPAIGN_ATTRIBUTION
                if _param(params, name) is not None
            },
        )
