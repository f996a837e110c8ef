"""
URL and browser launch validation for the browser tool.

Navigation targets are screened before every page load: only http(s) is
accepted, blocklisted domains and internal network addresses are refused
(internal access can be enabled for local development), an optional
allowlist narrows reachable domains, and external hosts need the user's
confirmation by default.

Host matching is textual plus literal-IP parsing. Names that merely resolve
to an internal address through DNS are not detected, so this is a screening
layer rather than network isolation.

Usage:
    from agentgate.core.security.url import URLValidator

    validator = URLValidator(allowlist=["docs.python.org"])
    result = validator.validate_url("https://docs.python.org/3/")
    if result.allowed and result.requires_confirmation:
        ask_user(result.normalized_url)
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlsplit

from agentgate.core.console import get_logger
from agentgate.core.security.models import BrowserArgsValidationResult, RiskLevel, URLValidationResult

logger = get_logger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})

INTERNAL_HOST_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"^localhost$",
        r"^127\.",
        r"^10\.",
        r"^192\.168\.",
        r"^172\.(1[6-9]|2\d|3[01])\.",
        r"^169\.254\.",
        r"^0\.0\.0\.0$",
        r"\.local$",
        r"\.internal$",
        r"\.localhost$",
    )
)

_INTERNAL_V4_NETWORKS = tuple(
    ipaddress.IPv4Network(net)
    for net in ("127.0.0.0/8", "10.0.0.0/8", "192.168.0.0/16", "172.16.0.0/12", "169.254.0.0/16")
)
_UNIQUE_LOCAL_V6 = ipaddress.IPv6Network("fc00::/7")

DANGEROUS_BROWSER_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-web-security",
    "--disable-features=IsolateOrigins",
    "--disable-site-isolation-trials",
    "--allow-running-insecure-content",
)

DEFAULT_TIMEOUT_MS = 30_000


def _parse_ipv4_loose(host: str) -> ipaddress.IPv4Address | None:
    """Parse the legacy IPv4 spellings browsers still accept (``127.1``, ``0x7f000001``)."""
    parts = host.split(".")
    if not 1 <= len(parts) <= 4:
        return None
    numbers: list[int] = []
    for part in parts:
        if not part or not part.isascii() or not part.isalnum():
            return None
        try:
            if part.lower().startswith("0x"):
                numbers.append(int(part, 16))
            elif len(part) > 1 and part.startswith("0"):
                numbers.append(int(part, 8))
            else:
                numbers.append(int(part, 10))
        except ValueError:
            return None
    *head, last = numbers
    if any(n > 255 for n in head) or last >= 256 ** (5 - len(numbers)):
        return None
    value = last
    for index, number in enumerate(head):
        value += number << (8 * (3 - index))
    return ipaddress.IPv4Address(value)


def _is_internal_ip(address: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if isinstance(address, ipaddress.IPv6Address):
        if address.ipv4_mapped is not None:
            return _is_internal_ip(address.ipv4_mapped)
        return (
            address.is_loopback
            or address.is_link_local
            or address.is_unspecified
            or address in _UNIQUE_LOCAL_V6
        )
    return address.is_unspecified or any(address in net for net in _INTERNAL_V4_NETWORKS)


def is_internal_network(hostname: str) -> bool:
    """True for localhost, private/link-local addresses and local-only suffixes."""
    host = hostname.strip().lower().rstrip(".")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        return False
    if any(pattern.search(host) for pattern in INTERNAL_HOST_PATTERNS):
        return True
    try:
        return _is_internal_ip(ipaddress.ip_address(host))
    except ValueError:
        pass
    loose = _parse_ipv4_loose(host)
    return loose is not None and _is_internal_ip(loose)


def _domain_matches(host: str, domain: str) -> bool:
    domain = domain.strip().lower().rstrip(".")
    return bool(domain) and (host == domain or host.endswith("." + domain))


class URLValidator:
    """Navigation screen for the browser tool.

    Args:
        allow_internal_networks: Permit localhost and private addresses.
        blocklist: Domains (and their subdomains) that are never reachable.
        allowlist: When non-empty, the only reachable domains.
        default_timeout_ms: Per-operation timeout handed to the browser.
        require_confirmation_for_external: Ask before visiting external hosts.
        allow_no_sandbox: Keep sandbox-disabling launch flags.
    """

    def __init__(
        self,
        *,
        allow_internal_networks: bool = False,
        blocklist: Iterable[str] = (),
        allowlist: Iterable[str] = (),
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        require_confirmation_for_external: bool = True,
        allow_no_sandbox: bool = False,
    ) -> None:
        self.allow_internal_networks = allow_internal_networks
        self.default_timeout_ms = default_timeout_ms
        self.require_confirmation_for_external = require_confirmation_for_external
        self.allow_no_sandbox = allow_no_sandbox
        self._blocklist: list[str] = [d.lower() for d in blocklist]
        self._allowlist: list[str] = [d.lower() for d in allowlist]

    @property
    def blocklist(self) -> tuple[str, ...]:
        return tuple(self._blocklist)

    @property
    def allowlist(self) -> tuple[str, ...]:
        return tuple(self._allowlist)

    def add_to_blocklist(self, domain: str) -> None:
        if domain.lower() not in self._blocklist:
            self._blocklist.append(domain.lower())

    def add_to_allowlist(self, domain: str) -> None:
        if domain.lower() not in self._allowlist:
            self._allowlist.append(domain.lower())

    def get_timeout(self) -> int:
        return self.default_timeout_ms

    def validate_url(self, url: str) -> URLValidationResult:
        if not url or not url.strip():
            return URLValidationResult(
                allowed=False, risk_level=RiskLevel.LOW, reason="Empty URL provided"
            )

        candidate = url.strip()
        try:
            parts = urlsplit(candidate)
            hostname = parts.hostname
            _ = parts.port  # raises ValueError for malformed ports
        except ValueError:
            return URLValidationResult(
                allowed=False, risk_level=RiskLevel.MEDIUM, reason="Invalid URL format"
            )

        scheme = parts.scheme.lower()
        if not scheme:
            return URLValidationResult(
                allowed=False, risk_level=RiskLevel.MEDIUM, reason="Invalid URL format"
            )
        if scheme not in ALLOWED_SCHEMES:
            logger.warning("audit.browser.reject reason=scheme url=%r", candidate)
            return URLValidationResult(
                allowed=False,
                risk_level=RiskLevel.HIGH,
                reason=f"Unsupported protocol: {scheme}:. Only HTTP and HTTPS are allowed.",
            )
        if not hostname:
            return URLValidationResult(
                allowed=False, risk_level=RiskLevel.MEDIUM, reason="Invalid URL format"
            )

        host = hostname.lower().rstrip(".")
        normalized = parts.geturl()

        if any(_domain_matches(host, blocked) for blocked in self._blocklist):
            logger.warning("audit.browser.reject reason=blocklist url=%r", candidate)
            return URLValidationResult(
                allowed=False,
                risk_level=RiskLevel.HIGH,
                reason="URL is in the blocklist",
                normalized_url=normalized,
            )

        internal = is_internal_network(host)
        if internal and not self.allow_internal_networks:
            logger.warning("audit.browser.reject reason=internal_network url=%r", candidate)
            return URLValidationResult(
                allowed=False,
                risk_level=RiskLevel.HIGH,
                reason="Access to internal network addresses is blocked for security reasons",
                normalized_url=normalized,
            )

        if self._allowlist and not any(_domain_matches(host, d) for d in self._allowlist):
            return URLValidationResult(
                allowed=False,
                risk_level=RiskLevel.MEDIUM,
                reason="URL is not in the allowlist",
                normalized_url=normalized,
            )

        if not internal and self.require_confirmation_for_external:
            return URLValidationResult(
                allowed=True,
                risk_level=RiskLevel.MEDIUM,
                reason="Navigating to an external URL requires user confirmation",
                requires_confirmation=True,
                normalized_url=normalized,
            )

        return URLValidationResult(
            allowed=True, risk_level=RiskLevel.LOW, normalized_url=normalized
        )

    def validate_browser_args(self, args: Sequence[str]) -> BrowserArgsValidationResult:
        """Strip launch flags that weaken browser isolation.

        Flags compare case-insensitively. ``--no-sandbox`` survives only when
        ``allow_no_sandbox`` is set; the other dangerous flags are always
        stripped.
        """
        sanitized: list[str] = []
        warnings: list[str] = []
        blocked = False
        for arg in args:
            lowered = arg.lower()
            dangerous = any(lowered.startswith(flag.lower()) for flag in DANGEROUS_BROWSER_ARGS)
            if not dangerous:
                sanitized.append(arg)
                continue
            if self.allow_no_sandbox and "no-sandbox" in lowered:
                sanitized.append(arg)
                warnings.append(f"Warning: Using {arg} - this reduces browser security")
                continue
            blocked = True
            warnings.append(f"Blocked dangerous argument: {arg}")

        return BrowserArgsValidationResult(
            allowed=not blocked or self.allow_no_sandbox,
            sanitized_args=tuple(sanitized),
            warnings=tuple(warnings),
        )


__all__ = [
    "DANGEROUS_BROWSER_ARGS",
    "DEFAULT_TIMEOUT_MS",
    "INTERNAL_HOST_PATTERNS",
    "URLValidator",
    "is_internal_network",
]
