"""Fetch canonical license texts from the SPDX license list.

The SPDX project publishes every license of the license list as a JSON
document in the ``spdx/license-list-data`` repository. This module downloads
those documents and turns them into a :class:`LicenseCorpus` that can be saved
to disk and used in place of the bundled corpus.
"""

import asyncio
import logging
from typing import Iterable, Optional

import aiohttp

from crate_licenses.corpus.store import CorpusEntry, LicenseCorpus

logger = logging.getLogger(__name__)

SPDX_LICENSE_DATA_URL = "https://raw.githubusercontent.com/spdx/license-list-data"


class SPDXCorpusFetcher:
    """Downloads license texts from the SPDX license-list-data repository.

    Manages a shared aiohttp.ClientSession for connection reuse.

    Attributes:
        ref: Git ref (branch or tag such as "v3.24") to download from.
        base_url: Base URL of the raw repository content.
    """

    def __init__(
        self, ref: str = "main", base_url: str = SPDX_LICENSE_DATA_URL
    ) -> None:
        """Initialize the fetcher.

        Args:
            ref: Git ref of the license list to fetch.
            base_url: Base URL of the raw repository content.
        """
        self.ref = ref
        self.base_url = base_url.rstrip("/")
        self._session: Optional[aiohttp.ClientSession] = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{self.ref}/json/{path}"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            The shared aiohttp ClientSession.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _get_json(
        self, url: str, retry_count: int = 0, max_retries: int = 3
    ) -> Optional[dict]:
        """GET a JSON document, retrying when rate limited.

        Args:
            url: URL to fetch.
            retry_count: Current retry attempt.
            max_retries: Maximum number of retries for rate limiting.

        Returns:
            The decoded document, or None if the fetch failed.
        """
        session = await self._get_session()

        try:
            async with session.get(url) as response:
                if response.status in (403, 429):
                    if retry_count >= max_retries:
                        logger.warning("Rate limited fetching %s, giving up", url)
                        return None

                    retry_after = response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        wait_time = int(retry_after)
                    else:
                        # Exponential backoff: 1s, 2s, 4s
                        wait_time = 2**retry_count

                    await asyncio.sleep(wait_time)
                    return await self._get_json(url, retry_count + 1, max_retries)

                if response.status == 200:
                    # raw.githubusercontent.com serves JSON as text/plain
                    return await response.json(content_type=None)

                logger.warning("Fetching %s failed with HTTP %d", url, response.status)
                return None

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Fetching %s failed: %s", url, e)
            return None

    async def fetch_version(self) -> Optional[str]:
        """Return the license list version published at the configured ref."""
        data = await self._get_json(self._url("licenses.json"))
        if data is None:
            return None
        return data.get("licenseListVersion")

    async def fetch_entry(self, identifier: str) -> Optional[CorpusEntry]:
        """Download the canonical text of one license.

        Args:
            identifier: SPDX license identifier (e.g., "MIT").

        Returns:
            The corpus entry, or None if the license could not be fetched.
        """
        data = await self._get_json(self._url(f"details/{identifier}.json"))
        if data is None:
            return None

        text = data.get("licenseText")
        if not text:
            logger.warning("SPDX entry for %s has no license text", identifier)
            return None

        return CorpusEntry(
            identifier=data.get("licenseId") or identifier,
            name=data.get("name") or identifier,
            text=text,
        )

    async def fetch_batch(
        self, identifiers: Iterable[str]
    ) -> dict[str, Optional[CorpusEntry]]:
        """Download several licenses concurrently.

        Args:
            identifiers: SPDX license identifiers to fetch.

        Returns:
            Mapping of each identifier to its entry, or None if it failed.
        """
        identifiers = list(dict.fromkeys(identifiers))
        logger.info("Fetching %d license texts", len(identifiers))

        results = await asyncio.gather(
            *(self.fetch_entry(i) for i in identifiers), return_exceptions=True
        )

        fetched: dict[str, Optional[CorpusEntry]] = {}
        for identifier, result in zip(identifiers, results):
            if isinstance(result, Exception):
                logger.error("Exception fetching %s: %s", identifier, result)
                fetched[identifier] = None
            else:
                fetched[identifier] = result

        successful = sum(1 for entry in fetched.values() if entry is not None)
        logger.info("Fetched %d/%d license texts", successful, len(identifiers))
        return fetched

    async def fetch_corpus(self, identifiers: Iterable[str]) -> LicenseCorpus:
        """Download licenses and assemble them into a corpus.

        Licenses that fail to download are left out.
        """
        version = await self.fetch_version()
        fetched = await self.fetch_batch(identifiers)
        return LicenseCorpus(
            (entry for entry in fetched.values() if entry is not None),
            version=version or self.ref,
        )

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "SPDXCorpusFetcher":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
