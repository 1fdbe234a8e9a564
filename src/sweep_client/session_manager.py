"""
Session management for the sweep client.

One aiohttp session is shared by the RPC node, price and metadata adapters
and lives as long as the client that owns it.
"""

import logging
from typing import Optional

import aiohttp

from .models.config import SweepConfig

logger = logging.getLogger(__name__)

USER_AGENT = "sweep-client/0.1"


class SessionManager:
    """Lazily creates the shared HTTP session and closes it on demand."""

    def __init__(self, config: SweepConfig):
        self._config = config
        self._session: Optional[aiohttp.ClientSession] = None

    def _build_session(self) -> aiohttp.ClientSession:
        connector = aiohttp.TCPConnector(limit=50, limit_per_host=20, ttl_dns_cache=300)
        return aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self._config.timeout),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

    async def create_session(self) -> aiohttp.ClientSession:
        """Return the open session, creating it on first use or after close."""
        if self._session is None or self._session.closed:
            self._session = self._build_session()
            logger.debug(f"HTTP session opened (timeout {self._config.timeout}s)")
        return self._session

    async def close_session(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP session closed")
        self._session = None

    @property
    def session(self) -> Optional[aiohttp.ClientSession]:
        """Current session, without creating one."""
        return self._session
