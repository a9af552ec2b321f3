"""
Infrastructure Layer: IPFS Metadata Resolver
Off-chain metadata is display-only; lookups never fail a ledger operation.
"""
import asyncio
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
import structlog

from src.application.cache import KeyedCache, metadata_key
from src.domain import TokenMetadata

logger = structlog.get_logger()

REQUIRED_FIELDS = ("name", "description", "image")


class InvalidMetadata(ValueError):
    """Raised when a gateway answers with an unusable document"""


def parse_metadata(cid: str, data: Any) -> TokenMetadata:
    if not isinstance(data, dict):
        raise InvalidMetadata("metadata is not a JSON object")

    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise InvalidMetadata(f"missing required fields: {', '.join(missing)}")

    attributes: List[Dict[str, Any]] = [a for a in data.get("attributes") or [] if isinstance(a, dict)]

    category = data.get("category")
    if not category:
        category = next(
            (
                str(attr.get("value"))
                for attr in attributes
                if str(attr.get("trait_type", "")).lower() == "category"
            ),
            "Unknown",
        )

    return TokenMetadata(
        cid=cid,
        name=str(data["name"]),
        description=str(data["description"]),
        image=str(data["image"]),
        category=str(category),
        attributes=attributes,
    )


def fallback_metadata(cid: str) -> TokenMetadata:
    return TokenMetadata(
        cid=cid,
        name=f"NFT {cid[:8]}...",
        description="Metadata temporarily unavailable. Please try again later.",
        image="",
        category="Unknown",
        attributes=[{"trait_type": "Status", "value": "Metadata Unavailable"}],
    )


class IpfsMetadataResolver:
    """
    Implements IMetadataResolver over a single IPFS HTTP gateway.
    Successful lookups are cached per CID; failures are not.
    """

    def __init__(
        self,
        gateway_url: str,
        cache: Optional[KeyedCache] = None,
        timeout: float = 10.0,
    ) -> None:
        self.gateway_url = gateway_url if gateway_url.endswith("/") else gateway_url + "/"
        self.cache = cache if cache is not None else KeyedCache()
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    def url_for(self, cid: str) -> str:
        return f"{self.gateway_url}{cid}"

    async def fetch(self, cid: str) -> TokenMetadata:
        try:
            return await self.cache.get(metadata_key(cid), lambda: self._download(cid))
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("metadata_fetch_failed", cid=cid, error=str(e))
            return fallback_metadata(cid)

    async def fetch_many(self, cids: Iterable[str]) -> Dict[str, TokenMetadata]:
        unique = list(dict.fromkeys(cids))
        results = await asyncio.gather(*(self.fetch(cid) for cid in unique))
        return dict(zip(unique, results))

    async def _download(self, cid: str) -> TokenMetadata:
        session = await self._get_session()
        url = self.url_for(cid)

        async with session.get(url) as response:
            if response.status != 200:
                raise InvalidMetadata(f"gateway returned HTTP {response.status}")
            data = await response.json(content_type=None)

        metadata = parse_metadata(cid, data)
        logger.debug("metadata_fetched", cid=cid, name=metadata.name, category=metadata.category)
        return metadata
