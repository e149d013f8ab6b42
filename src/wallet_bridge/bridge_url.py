"""Validation of Wallet Bridge relay URLs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from .errors import WalletBridgeError

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1"})


class BridgeURLErrorKind(str, Enum):
    """Reasons a relay URL is rejected."""

    NOT_HTTPS = "not_https"
    MISSING_HOST = "missing_host"
    NOT_DEFAULT_PORT = "not_default_port"
    CONTAINS_PATH = "contains_path"
    CONTAINS_QUERY = "contains_query"
    CONTAINS_FRAGMENT = "contains_fragment"


_KIND_MESSAGES = {
    BridgeURLErrorKind.NOT_HTTPS: "Bridge URL must use HTTPS.",
    BridgeURLErrorKind.MISSING_HOST: "Bridge URL must name a host.",
    BridgeURLErrorKind.NOT_DEFAULT_PORT: "Bridge URL must use the default port.",
    BridgeURLErrorKind.CONTAINS_PATH: "Bridge URL must not contain a path.",
    BridgeURLErrorKind.CONTAINS_QUERY: "Bridge URL must not contain a query.",
    BridgeURLErrorKind.CONTAINS_FRAGMENT: "Bridge URL must not contain a fragment.",
}


class BridgeURLError(WalletBridgeError):
    """Raised when a relay URL fails validation."""

    def __init__(self, kind: BridgeURLErrorKind, url: str) -> None:
        super().__init__(f"{_KIND_MESSAGES[kind]} Got {url!r}")
        self.kind = kind
        self.url = url


@dataclass(frozen=True)
class BridgeURL:
    """A validated relay endpoint.

    Instances are only created through :meth:`parse`, so holding one means the
    URL already passed validation. Equality is plain URL string equality.
    """

    raw_url: str

    @classmethod
    def parse(cls, url: str | BridgeURL) -> BridgeURL:
        """
        Validate ``url`` and wrap it.

        Loopback hosts (``localhost``, ``127.0.0.1``) skip every check so local
        development relays can run on plain HTTP and any port.

        Raises:
            BridgeURLError: with the kind of the first violated rule
        """
        if isinstance(url, BridgeURL):
            return url

        parts = urlsplit(url)
        if parts.hostname in LOOPBACK_HOSTS:
            return cls(url)

        if parts.scheme != "https":
            raise BridgeURLError(BridgeURLErrorKind.NOT_HTTPS, url)

        if not parts.hostname:
            raise BridgeURLError(BridgeURLErrorKind.MISSING_HOST, url)

        try:
            port = parts.port
        except ValueError:
            raise BridgeURLError(BridgeURLErrorKind.NOT_DEFAULT_PORT, url) from None
        if port is not None:
            raise BridgeURLError(BridgeURLErrorKind.NOT_DEFAULT_PORT, url)

        if parts.path not in ("", "/"):
            raise BridgeURLError(BridgeURLErrorKind.CONTAINS_PATH, url)

        # urlsplit reports "" for both "no query" and "empty query"
        before_fragment = url.split("#", 1)[0]
        if parts.query or "?" in before_fragment:
            raise BridgeURLError(BridgeURLErrorKind.CONTAINS_QUERY, url)

        if parts.fragment or "#" in url:
            raise BridgeURLError(BridgeURLErrorKind.CONTAINS_FRAGMENT, url)

        return cls(url)

    @property
    def is_loopback(self) -> bool:
        return urlsplit(self.raw_url).hostname in LOOPBACK_HOSTS

    def endpoint(self, *segments: str) -> str:
        """Join path segments onto the relay root."""
        base = self.raw_url.rstrip("/")
        return "/".join([base, *segments])

    def __str__(self) -> str:
        return self.raw_url


DEFAULT_BRIDGE_URL = BridgeURL.parse("https://bridge.worldcoin.org")
