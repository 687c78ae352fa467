import asyncio

from core.environment.config import Settings
from core.exceptions import UnavailableNetworkException
from core.redis.providers import CacheService
from explorer.abi_service import ABIService
from explorer.accessor import BlockIdentifier
from explorer.analytics_service import AnalyticsService
from explorer.nft_service import NFTService
from explorer.scanner import RecentTransactionScanner
from explorer.schemas import (
    AbiItem,
    AddressResponse,
    BlockResponse,
    ContractResponse,
    GasPricePoint,
    NetworkStatsResponse,
    NFTCollectionResponse,
    NFTItemResponse,
    ReadContractResponse,
    TokenBalanceResponse,
    TokenResponse,
    TokenTransferResponse,
    TransactionResponse,
    TxVolumePoint,
)
from explorer.services import ExplorerService
from explorer.token_service import TokenService

BLOCK_TTL = 3600
TRANSACTION_TTL = 86400
TOKEN_TTL = 86400
TOP_TOKENS_TTL = 600
COLLECTION_TTL = 86400


class GetAddressUseCase:
    """
    Address overview together with its recent transactions.

    Nothing here is cached: balances and the scan window move with the
    chain head.

    Parameters
    ----------
    explorer_service : ExplorerService
        Explorer service instance
    scanner : RecentTransactionScanner
        Recent transaction scanner
    settings : Settings
        Application settings (scan defaults)
    """

    def __init__(
        self,
        explorer_service: ExplorerService,
        scanner: RecentTransactionScanner,
        settings: Settings
    ):
        self.explorer_service = explorer_service
        self.scanner = scanner
        self.settings = settings

    async def __call__(
        self,
        address: str,
        network: str,
        limit: int | None = None,
        max_blocks_back: int | None = None
    ) -> AddressResponse:
        """
        Execute use case.

        Parameters
        ----------
        address : str
            Address
        network : str
            Network name
        limit : int | None
            Number of recent transactions, settings default when None
        max_blocks_back : int | None
            Scan depth, settings default when None

        Returns
        -------
        AddressResponse
            Address overview with transactions newest first
        """
        info_task = asyncio.ensure_future(self.explorer_service.get_address_info(address, network))
        scan_task = asyncio.ensure_future(self.scanner.find_recent_transactions(
            address=address,
            network=network,
            limit=self.settings.scan_default_limit if limit is None else limit,
            max_blocks_back=self.settings.scan_max_blocks_back if max_blocks_back is None else max_blocks_back,
            deadline=self.settings.scan_deadline_seconds,
        ))
        try:
            info, transactions = await asyncio.gather(info_task, scan_task)
        except BaseException:
            # a failed lookup or a dropped request must not leave the scan fetching blocks
            for task in (info_task, scan_task):
                task.cancel()
            await asyncio.gather(info_task, scan_task, return_exceptions=True)
            raise

        return info.model_copy(update={
            "transactions": [TransactionResponse.from_entity(tx) for tx in transactions]
        })


class GetAddressTokensUseCase:

    def __init__(self, explorer_service: ExplorerService, settings: Settings):
        self.explorer_service = explorer_service
        self.settings = settings

    async def __call__(self, address: str, network: str) -> list[TokenBalanceResponse]:
        network_config = self.settings.get_network(network)
        if network_config is None:
            raise UnavailableNetworkException()
        return await self.explorer_service.get_token_balances(
            address, network, network_config.popular_tokens
        )


class GetBlockUseCase:
    """
    Block by number or ``latest``.

    Numbered blocks are cached; ``latest`` never is.
    """

    def __init__(self, explorer_service: ExplorerService, cache_service: CacheService):
        self.explorer_service = explorer_service
        self.cache = cache_service

    async def __call__(self, block: BlockIdentifier, network: str) -> BlockResponse:
        cache_key = f"block:{network}:{block}"
        if block != "latest":
            cached = await self.cache.get(cache_key)
            if cached:
                return BlockResponse(**cached)

        response = BlockResponse.from_entity(
            await self.explorer_service.get_block_info(block, network)
        )

        if block != "latest":
            await self.cache.set(cache_key, response.model_dump(mode="json"), ttl=BLOCK_TTL)

        return response


class GetTransactionUseCase:
    """
    Transaction by hash.

    Mined transactions are cached; confirmations are recomputed from the
    current height on every hit.

    Parameters
    ----------
    explorer_service : ExplorerService
        Explorer service instance
    cache_service : CacheService
        Cache service instance
    """

    def __init__(self, explorer_service: ExplorerService, cache_service: CacheService):
        self.explorer_service = explorer_service
        self.cache = cache_service

    async def __call__(self, tx_hash: str, network: str) -> TransactionResponse:
        cache_key = f"tx:{network}:{tx_hash.lower()}"

        cached = await self.cache.get(cache_key)
        if cached:
            response = TransactionResponse(**cached)
            if response.block_number is None:
                return response
            confirmations = await self.explorer_service.get_confirmations(response.block_number, network)
            return response.model_copy(update={"confirmations": confirmations})

        tx = await self.explorer_service.get_transaction(tx_hash, network)
        response = TransactionResponse.from_entity(tx)

        if tx.block_number is not None:
            await self.cache.set(cache_key, response.model_dump(mode="json"), ttl=TRANSACTION_TTL)

        return response


class GetContractUseCase:

    def __init__(self, explorer_service: ExplorerService, abi_service: ABIService):
        self.explorer_service = explorer_service
        self.abi_service = abi_service

    async def __call__(self, address: str, network: str, include_abi: bool = False) -> ContractResponse:
        """
        Execute use case.

        Parameters
        ----------
        address : str
            Contract address
        network : str
            Network name
        include_abi : bool
            Attach the verified ABI from the explorer

        Returns
        -------
        ContractResponse
            Contract overview
        """
        response = await self.explorer_service.get_contract_info(address, network)
        if include_abi and response.is_contract:
            abi = await self.abi_service.get_abi(address, network)
            response = response.model_copy(update={"abi": abi})
        return response


class ReadContractUseCase:

    def __init__(self, explorer_service: ExplorerService):
        self.explorer_service = explorer_service

    async def __call__(self, address: str, network: str, abi_item: AbiItem) -> ReadContractResponse:
        return await self.explorer_service.read_contract(address, network, abi_item)


class GetTokenInfoUseCase:

    def __init__(self, token_service: TokenService, cache_service: CacheService):
        self.token_service = token_service
        self.cache = cache_service

    async def __call__(self, address: str, network: str) -> TokenResponse:
        cache_key = f"token:{network}:{address.lower()}"

        cached = await self.cache.get(cache_key)
        if cached:
            return TokenResponse(**cached)

        response = await self.token_service.get_token_info(address, network)
        await self.cache.set(cache_key, response.model_dump(mode="json"), ttl=TOKEN_TTL)
        return response


class GetTopTokensUseCase:
    """
    Popular tokens of a network, from the configured token list.
    """

    def __init__(self, token_service: TokenService, cache_service: CacheService, settings: Settings):
        self.token_service = token_service
        self.cache = cache_service
        self.settings = settings

    async def __call__(self, network: str) -> list[TokenResponse]:
        network_config = self.settings.get_network(network)
        if network_config is None:
            raise UnavailableNetworkException()

        cache_key = f"tokens:top:{network}"
        cached = await self.cache.get(cache_key)
        if cached and isinstance(cached, list):
            return [TokenResponse(**item) for item in cached]

        tokens = await self.token_service.get_top_tokens(network, network_config.popular_tokens)
        if tokens:
            await self.cache.set(
                cache_key, [token.model_dump(mode="json") for token in tokens], ttl=TOP_TOKENS_TTL
            )
        return tokens


class GetTokenTransfersUseCase:

    def __init__(self, token_service: TokenService):
        self.token_service = token_service

    async def __call__(self, address: str, network: str, limit: int) -> list[TokenTransferResponse]:
        return await self.token_service.get_token_transfers(address, network, limit)


class GetNFTCollectionUseCase:

    def __init__(self, nft_service: NFTService, cache_service: CacheService):
        self.nft_service = nft_service
        self.cache = cache_service

    async def __call__(self, address: str, network: str) -> NFTCollectionResponse:
        cache_key = f"nft:collection:{network}:{address.lower()}"

        cached = await self.cache.get(cache_key)
        if cached:
            return NFTCollectionResponse(**cached)

        response = await self.nft_service.get_collection_info(address, network)
        await self.cache.set(cache_key, response.model_dump(mode="json"), ttl=COLLECTION_TTL)
        return response


class GetOwnedNFTsUseCase:

    def __init__(self, nft_service: NFTService):
        self.nft_service = nft_service

    async def __call__(self, owner: str, contract: str, network: str, limit: int) -> list[NFTItemResponse]:
        return await self.nft_service.get_nfts_by_owner(owner, contract, network, limit)


class GetNFTUseCase:

    def __init__(self, nft_service: NFTService):
        self.nft_service = nft_service

    async def __call__(self, contract: str, token_id: int, network: str) -> NFTItemResponse:
        return await self.nft_service.get_nft_metadata(contract, token_id, network)


class GetNetworkStatsUseCase:

    def __init__(self, analytics_service: AnalyticsService):
        self.analytics_service = analytics_service

    async def __call__(self, network: str) -> NetworkStatsResponse:
        return await self.analytics_service.get_network_stats(network)


class GetGasHistoryUseCase:

    def __init__(self, analytics_service: AnalyticsService):
        self.analytics_service = analytics_service

    async def __call__(self, network: str, hours: int) -> list[GasPricePoint]:
        return await self.analytics_service.get_gas_price_history(network, hours)


class GetTxHistoryUseCase:

    def __init__(self, analytics_service: AnalyticsService):
        self.analytics_service = analytics_service

    async def __call__(self, network: str, days: int) -> list[TxVolumePoint]:
        return await self.analytics_service.get_transaction_volume_history(network, days)
