"""Parser for the reCAPTCHA verify endpoint's line-oriented reply.

The authority answers with one verdict per newline-terminated line::

    true\\n

or::

    false\\n
    incorrect-captcha-sol\\n

Anything else is reported as ``Malformed`` rather than raised, so the
session can tell an infrastructure fault apart from a wrong answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import httpx

_TRUE_TOKEN = b"true"
_FALSE_TOKEN = b"false"


@dataclass(frozen=True)
class Success:
    pass


@dataclass(frozen=True)
class Failure:
    code: str  # "" when the authority omitted it


@dataclass(frozen=True)
class Malformed:
    reason: str  # diagnostic only; never shown to end users


VerificationOutcome = Union[Success, Failure, Malformed]

# Only two short lines are ever used; anything longer is not a verdict
MAX_REPLY_BYTES = 4096


def _scan(buf: bytes, complete: bool) -> Optional[VerificationOutcome]:
    """Decide from the bytes seen so far, or return None to read more.

    ``complete`` means the stream ended cleanly after ``buf``.
    """
    first, sep, rest = buf.partition(b"\n")
    if not sep:
        if complete:
            return Malformed(f"no complete first line in {len(buf)}-byte reply")
        return None

    if first == _TRUE_TOKEN:
        return Success()

    if first == _FALSE_TOKEN:
        code, sep, _ = rest.partition(b"\n")
        if sep or complete:
            return Failure(code.decode("utf-8", errors="replace"))
        return None

    shown = first[:32].decode("utf-8", errors="replace")
    return Malformed(f"unexpected first line {shown!r}")


def parse_verdict(body: Union[str, bytes]) -> VerificationOutcome:
    """Interpret a complete verify reply.

    Line 1 must be exactly ``true\\n`` or ``false\\n``; only a bare ``\\n``
    ends a line. After ``true`` nothing else is read. After ``false`` the
    next line is the error code; the reply may end without a final newline,
    in which case the remainder is the code as-is.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    return _scan(body, complete=True)


async def read_verdict(response: httpx.Response) -> VerificationOutcome:
    """Read a streamed reply line by line and stop once the verdict is known.

    A read error before the verdict is complete (mid first line, or mid
    error code) is ``Malformed``: the authority's intent is unknown. A read
    error after the verdict is complete is never seen, since reading stops
    there. The rest of the body is left for the response to discard.
    """
    buf = b""
    try:
        async for chunk in response.aiter_bytes():
            buf += chunk
            outcome = _scan(buf, complete=False)
            if outcome is not None:
                return outcome
            if len(buf) > MAX_REPLY_BYTES:
                return Malformed(f"no verdict in first {MAX_REPLY_BYTES} bytes")
    except httpx.HTTPError as e:
        return Malformed(f"read failed after {len(buf)} bytes: {type(e).__name__}")

    return _scan(buf, complete=True)
