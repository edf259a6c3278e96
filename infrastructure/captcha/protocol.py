"""CaptchaVerifier protocol: request handlers depend on this, not the concrete session."""

from typing import Protocol, TextIO, runtime_checkable


@runtime_checkable
class CaptchaVerifier(Protocol):
    @property
    def verified(self) -> bool: ...

    def html_string(self) -> str: ...

    def write_html(self, stream: TextIO) -> None: ...

    async def verify(self, challenge: str, response: str, remote_addr: str) -> bool: ...
