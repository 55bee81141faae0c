"""HTTP page fetcher with SSRF protection.

Pages to digest are fetched through the shared httpx client. Redirects are
followed manually so every hop is checked against the private-network block
list.
"""

from __future__ import annotations

import ipaddress
from urllib.parse import urljoin, urlparse

import httpx
import structlog

from webdigest.errors import DigestError, ErrorCode

log = structlog.get_logger()

PRIVATE_NETWORKS: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
]


def page_host(url: str) -> str:
    return (urlparse(url).hostname or "").rstrip(".").lower()


def is_url_allowed(url: str) -> bool:
    """Only http(s) URLs with a hostname outside private ranges are fetched."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    hostname = parsed.hostname or ""
    if not hostname:
        return False
    try:
        addr = ipaddress.ip_address(hostname)
    except ValueError:
        return True  # hostname is a domain name, not an IP
    return not any(addr in net for net in PRIVATE_NETWORKS)


def _blocked(url: str) -> DigestError:
    log.warning("ssrf_blocked", url=url)
    return DigestError(
        code=ErrorCode.URL_NOT_ALLOWED,
        message=f"URL not allowed: {url}",
        suggestion="Only public http(s) pages can be digested.",
    )


class PageFetcher:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: str, max_redirects: int = 3) -> str:
        """Return the page body. Raises DigestError on any failure."""
        target = url
        redirects = 0
        while True:
            if not is_url_allowed(target):
                raise _blocked(target)
            response = await self._get(url, target)

            location = response.headers.get("location")
            if response.is_redirect and location:
                if redirects == max_redirects:
                    raise DigestError(
                        code=ErrorCode.PAGE_FETCH_FAILED,
                        message=f"Too many redirects fetching {url}",
                        suggestion="The page has an unusually long redirect chain.",
                    )
                redirects += 1
                target = urljoin(target, location)
                log.debug("page_redirect", url=url, target=target, hop=redirects)
                continue

            if not response.is_success:
                raise DigestError(
                    code=ErrorCode.PAGE_FETCH_FAILED,
                    message=f"HTTP {response.status_code} fetching {url}",
                    suggestion="The page may be temporarily unavailable.",
                    status=response.status_code,
                    recoverable=response.status_code >= 500,
                )

            body = response.text
            log.info("page_fetched", url=url, status_code=response.status_code, chars=len(body))
            return body

    async def _get(self, url: str, target: str) -> httpx.Response:
        try:
            return await self._client.get(target)
        except httpx.HTTPError as exc:
            raise DigestError(
                code=ErrorCode.PAGE_FETCH_FAILED,
                message=f"Network error fetching {url}: {exc}",
                suggestion="The page may be temporarily unavailable.",
                recoverable=True,
            ) from exc
