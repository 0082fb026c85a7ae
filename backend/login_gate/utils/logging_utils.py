"""Logging helpers that keep credentials and PII out of log lines."""

import hashlib
from typing import Optional


def _short_hash(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:6]


def redact_email(email: Optional[str]) -> str:
    """
    Redact an email address while keeping log lines correlatable.

    Examples:
        >>> redact_email("editor@example.com")
        'e***@example.com'
        >>> redact_email(None)
        'N/A'
    """
    if not email:
        return "N/A"

    local, sep, domain = email.partition("@")
    if not sep:
        return f"hash:{_short_hash(email)}"

    # Short local parts would be readable in full, hash them instead
    if len(local) < 3:
        return f"hash:{_short_hash(email)}@{domain}"

    return f"{local[0]}***@{domain}"


def redact_username(username: Optional[str]) -> str:
    """
    Redact a submitted backend username.

    Failed logins frequently carry a password typed into the username field,
    so only the first character and a short hash are logged.

    Examples:
        >>> redact_username("admin")
        'a***(8c6976)'
    """
    if not username:
        return "N/A"
    return f"{username[0]}***({_short_hash(username)})"


def redact_ip(ip_address: Optional[str]) -> str:
    """
    Redact the host part of an IP address.

    Examples:
        >>> redact_ip("192.168.1.100")
        '192.168.1.***'
    """
    if not ip_address:
        return "N/A"

    if "." in ip_address:
        parts = ip_address.split(".")
        if len(parts) == 4:
            return ".".join(parts[:3]) + ".***"

    if ":" in ip_address:
        parts = ip_address.split(":")
        if len(parts) >= 4:
            return ":".join(parts[:3]) + ":***"

    return f"hash:{_short_hash(ip_address)}"
