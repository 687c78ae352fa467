import asyncio
import logging
from typing import Any

import aiohttp
from web3 import Web3

from core.exceptions import ContractCallException
from explorer.abis import ERC721_ABI
from explorer.accessor import ChainDataAccessor
from explorer.schemas import NFTCollectionResponse, NFTItemResponse

OWNERSHIP_LOOKBACK_BLOCKS = 10000


class NFTService:
    """
    ERC-721 lookups.

    Parameters
    ----------
    accessor : ChainDataAccessor
        Chain data accessor
    logger : logging.Logger
        Logger instance
    ipfs_gateway : str
        HTTP gateway prefix for ipfs:// URIs
    """

    def __init__(
        self,
        accessor: ChainDataAccessor,
        logger: logging.Logger,
        ipfs_gateway: str = "https://ipfs.io/ipfs/"
    ):
        self.accessor = accessor
        self.logger = logger
        self.ipfs_gateway = ipfs_gateway

    def resolve_uri(self, uri: str) -> str:
        """
        Rewrite an ipfs:// URI to the configured HTTP gateway.

        Parameters
        ----------
        uri : str
            Token or image URI

        Returns
        -------
        str
            URI reachable over HTTP
        """
        if uri.startswith("ipfs://"):
            return f"{self.ipfs_gateway}{uri[len('ipfs://'):]}"
        return uri

    async def get_collection_info(self, contract_address: str, network: str) -> NFTCollectionResponse:
        """
        Read name, symbol and total supply of a collection.

        ``totalSupply`` is optional in ERC-721; collections without it
        report 0.
        """
        name, symbol = await asyncio.gather(
            self.accessor.call(network, contract_address, ERC721_ABI, "name"),
            self.accessor.call(network, contract_address, ERC721_ABI, "symbol"),
        )

        total_supply = 0
        try:
            total_supply = int(await self.accessor.call(network, contract_address, ERC721_ABI, "totalSupply"))
        except ContractCallException:
            self.logger.debug(f"{contract_address} has no totalSupply()")

        return NFTCollectionResponse(
            address=contract_address,
            name=name,
            symbol=symbol,
            total_supply=total_supply,
        )

    async def get_nft_metadata(self, contract_address: str, token_id: int, network: str) -> NFTItemResponse:
        """
        Get owner and metadata of a token.

        Parameters
        ----------
        contract_address : str
            Collection contract
        token_id : int
            Token id
        network : str
            Network name

        Returns
        -------
        NFTItemResponse
            Token with whatever metadata could be resolved
        """
        owner = await self.accessor.call(network, contract_address, ERC721_ABI, "ownerOf", token_id)
        item = NFTItemResponse(
            token_id=str(token_id),
            contract_address=contract_address,
            owner=owner,
        )

        try:
            token_uri = await self.accessor.call(network, contract_address, ERC721_ABI, "tokenURI", token_id)
        except ContractCallException:
            return item
        if not token_uri:
            return item

        metadata = await self._fetch_metadata(self.resolve_uri(token_uri))
        if not metadata:
            return item

        image = metadata.get("image")
        return item.model_copy(update={
            "name": metadata.get("name"),
            "description": metadata.get("description"),
            "image": self.resolve_uri(image) if isinstance(image, str) else None,
            "attributes": metadata.get("attributes") if isinstance(metadata.get("attributes"), list) else None,
        })

    async def _fetch_metadata(self, url: str) -> dict[str, Any] | None:
        """
        Download token metadata JSON.

        Returns
        -------
        dict[str, Any] | None
            Metadata or None when it cannot be fetched
        """
        if not url.startswith(("http://", "https://")):
            return None
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
                async with session.get(url) as response:
                    if response.status == 200:
                        data = await response.json(content_type=None)
                        if isinstance(data, dict):
                            return data
                    self.logger.warning(f"Metadata {url} answered {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.warning(f"Error fetching NFT metadata from {url}: {e}")
        return None

    async def get_nfts_by_owner(
        self,
        owner: str,
        contract_address: str,
        network: str,
        limit: int = 10
    ) -> list[NFTItemResponse]:
        """
        List tokens of a collection currently held by ``owner``.

        Candidates are the token ids transferred to ``owner`` in the last
        10000 blocks; each is kept only if ``ownerOf`` still returns the
        owner.

        Parameters
        ----------
        owner : str
            Holder address
        contract_address : str
            Collection contract
        network : str
            Network name
        limit : int
            Maximum number of tokens

        Returns
        -------
        list[NFTItemResponse]
            Owned tokens in order of first receipt
        """
        current_block = await self.accessor.current_height(network)
        from_block = max(0, current_block - OWNERSHIP_LOOKBACK_BLOCKS)
        events = await self.accessor.transfer_events(
            network, contract_address, ERC721_ABI, from_block, current_block, recipient=owner
        )

        token_ids = list(dict.fromkeys(event.amount for event in events))

        nfts = []
        for token_id in token_ids:
            if len(nfts) >= limit:
                break
            try:
                current_owner = await self.accessor.call(
                    network, contract_address, ERC721_ABI, "ownerOf", token_id
                )
            except ContractCallException:
                # burned since
                continue
            if current_owner.lower() == owner.lower():
                nfts.append(NFTItemResponse(
                    token_id=str(token_id),
                    contract_address=contract_address,
                    owner=Web3.to_checksum_address(current_owner),
                ))
        return nfts
