"""
Remote-address handling for captcha verification.

The verification authority wants the bare client IP, while servers hand us
``host:port`` strings (``203.0.113.5:54321``, ``[2001:db8::1]:443``).
Splitting is address-family agnostic: IPv6 hosts must be bracketed when a
port is attached, exactly as they appear in a socket peer address.
"""

from __future__ import annotations

from fastapi import Request


class AddressError(ValueError):
    """Raised when a ``host:port`` string cannot be split."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"address {address!r}: {reason}")
        self.address = address
        self.reason = reason


def split_host_port(address: str) -> tuple[str, str]:
    """Split ``host:port`` / ``[host]:port`` into ``(host, port)``.

    The port may be empty (``"host:"``) but the separator is mandatory.
    Brackets are removed from IPv6 hosts.

    Raises:
        AddressError: missing port, unbalanced brackets, or an unbracketed
            host that contains colons.
    """
    i = address.rfind(":")
    if i < 0:
        raise AddressError(address, "missing port in address")

    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise AddressError(address, "missing ']' in address")
        if end + 1 == len(address):
            raise AddressError(address, "missing port in address")
        if end + 1 != i:
            if address[end + 1] == ":":
                raise AddressError(address, "too many colons in address")
            raise AddressError(address, "missing port in address")
        host = address[1:end]
        if "[" in address[1:] or "]" in address[end + 1:]:
            raise AddressError(address, "unexpected bracket in address")
    else:
        host = address[:i]
        if ":" in host:
            raise AddressError(address, "too many colons in address")
        if "[" in address or "]" in address:
            raise AddressError(address, "unexpected bracket in address")

    return host, address[i + 1:]


def join_host_port(host: str, port: int | str) -> str:
    """Inverse of :func:`split_host_port`; brackets hosts that contain colons."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def remote_addr_from_request(request: Request) -> str:
    """Build the ``host:port`` peer address of a FastAPI ``Request``.

    Returns ``""`` when the ASGI server did not report a client, which
    :func:`split_host_port` rejects.
    """
    if request.client is None:
        return ""
    return join_host_port(request.client.host, request.client.port)
