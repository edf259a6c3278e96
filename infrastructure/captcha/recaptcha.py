"""reCAPTCHA verification session.

A RecaptchaSession identifies one challenge lifecycle for one client. It may
be kept with the client's web session and reused for every attempt: a wrong
answer stores the authority's error code so the next rendered widget tells
the user what went wrong. Once an answer is verified the session is terminal
and should be discarded.

Sessions hold no lock. One client drives one session, so callers must not
await ``verify`` concurrently on the same instance.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, TextIO

import httpx

from config import RECAPTCHA_API_SERVER, RECAPTCHA_VERIFY_URL, CaptchaSettings
from errors import (
    AlreadyVerifiedError,
    CaptchaProtocolError,
    CaptchaTransportError,
    InvalidAddressError,
)
from infrastructure.captcha.verdict import Failure, Success, read_verdict
from infrastructure.captcha.widget import (
    WidgetFields,
    render_widget,
    write_widget,
)
from infrastructure.http_client import HttpClient
from shared.ip_utils import AddressError, split_host_port
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)


def build_http_client(
    settings: CaptchaSettings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> HttpClient:
    """Client for the verification authority, honouring the configured timeout.

    One client can be shared by every session of the process.
    """
    return HttpClient(timeout=settings.recaptcha_timeout_seconds, transport=transport)


class SessionState(Enum):
    FRESH = "fresh"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


class RecaptchaSession:
    def __init__(
        self,
        public_key: str,
        private_key: str,
        http_client: HttpClient,
        *,
        verify_url: str = RECAPTCHA_VERIFY_URL,
        api_server: str = RECAPTCHA_API_SERVER,
        hash_ips: bool = True,
    ) -> None:
        self._public_key = public_key
        self._private_key = private_key
        self._http = http_client
        self._verify_url = verify_url
        self._api_server = api_server
        self._hash_ips = hash_ips

        self._last_error_code = ""
        self._failed = False
        self._verified = False

    @classmethod
    def from_settings(
        cls, settings: CaptchaSettings, http_client: HttpClient, *, hash_ips: bool = True
    ) -> "RecaptchaSession":
        return cls(
            settings.recaptcha_public_key,
            settings.recaptcha_private_key,
            http_client,
            verify_url=settings.recaptcha_verify_url,
            api_server=settings.recaptcha_api_server,
            hash_ips=hash_ips,
        )

    @property
    def public_key(self) -> str:
        return self._public_key

    @property
    def private_key(self) -> str:
        return self._private_key

    @property
    def last_error_code(self) -> str:
        return self._last_error_code

    @property
    def verified(self) -> bool:
        return self._verified

    @property
    def state(self) -> SessionState:
        if self._verified:
            return SessionState.SUCCEEDED
        if self._failed:
            return SessionState.FAILED
        return SessionState.FRESH

    def __repr__(self) -> str:
        return f"<RecaptchaSession public_key={self._public_key!r} state={self.state.value}>"

    # ── Rendering ─────────────────────────────────────────────────────────────

    def rendered_fields(self) -> WidgetFields:
        return WidgetFields(public_key=self._public_key, error_code=self._last_error_code)

    def write_html(self, stream: TextIO) -> None:
        """Write the widget markup for this session to a text stream."""
        write_widget(stream, self.rendered_fields(), self._api_server)

    def html_string(self) -> str:
        return render_widget(self.rendered_fields(), self._api_server)

    def html_bytes(self) -> bytes:
        return self.html_string().encode("utf-8")

    # ── Verification ──────────────────────────────────────────────────────────

    async def verify(self, challenge: str, response: str, remote_addr: str) -> bool:
        """Ask the authority whether ``response`` answers ``challenge``.

        Args:
            challenge: the ``recaptcha_challenge_field`` form value.
            response: the ``recaptcha_response_field`` form value (the user's answer).
            remote_addr: the client's ``host:port`` peer address,
                e.g. ``"127.0.0.1:45435"`` or ``"[::1]:45435"``.

        Returns:
            ``True`` when the answer was accepted. ``False`` when the user
            answered wrong; the error code is kept for the next render.

        Raises:
            AlreadyVerifiedError: the session already succeeded. No request is made.
            InvalidAddressError: ``remote_addr`` has no separable host and port.
            CaptchaTransportError: the authority was unreachable, timed out
                or answered with a non-2xx status.
            CaptchaProtocolError: the reply was neither ``true`` nor ``false``,
                or the body broke off before the verdict was complete.

        Only a ``False`` result is meant for the end user; the errors are
        operational and must not be shown as a wrong answer. Session state
        is untouched whenever an error is raised.
        """
        if self._verified:
            log.warning("recaptcha_already_verified", public_key=self._public_key)
            raise AlreadyVerifiedError(
                "This reCAPTCHA session has already been verified. "
                "Create a new session for a new challenge."
            )

        try:
            remote_ip, _ = split_host_port(remote_addr)
        except AddressError as e:
            log.warning("recaptcha_invalid_remote_addr", reason=e.reason)
            raise InvalidAddressError(str(e), field="remote_addr") from e

        ip_hash = hash_ip(remote_ip, enabled=self._hash_ips)
        form = {
            "privatekey": self._private_key,
            "remoteip": remote_ip,
            "challenge": challenge,
            "response": response,
        }
        # Only sending the request and its status map to transport errors;
        # read_verdict reports a broken body as Malformed
        try:
            async with self._http.stream("POST", self._verify_url, data=form) as resp:
                resp.raise_for_status()
                outcome = await read_verdict(resp)
        except httpx.HTTPError as e:
            log.error(
                "recaptcha_transport_failed",
                ip=ip_hash,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CaptchaTransportError(
                "Could not reach the reCAPTCHA verification service."
            ) from e

        if isinstance(outcome, Success):
            self._verified = True
            self._last_error_code = ""
            log.info("recaptcha_verified", ip=ip_hash)
            return True

        if isinstance(outcome, Failure):
            self._failed = True
            self._last_error_code = outcome.code
            log.warning("recaptcha_rejected", ip=ip_hash, error_code=outcome.code)
            return False

        log.error("recaptcha_malformed_reply", ip=ip_hash, reason=outcome.reason)
        raise CaptchaProtocolError(
            "Received an unexpected reply from the reCAPTCHA verification service.",
            details=outcome.reason,
        )
