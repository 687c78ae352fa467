from dishka import Provider, Scope, provide, FromComponent
from typing import Annotated
from web3 import AsyncWeb3
import aiohttp
import logging

from core.environment.config import Settings
from core.redis.providers import CacheService
from explorer.abi_service import ABIService
from explorer.accessor import ChainDataAccessor, Web3ChainAccessor
from explorer.analytics_service import AnalyticsService
from explorer.nft_service import NFTService
from explorer.scanner import RecentTransactionScanner
from explorer.services import ExplorerService
from explorer.token_service import TokenService
from explorer.usecases import (
    GetAddressTokensUseCase,
    GetAddressUseCase,
    GetBlockUseCase,
    GetContractUseCase,
    GetGasHistoryUseCase,
    GetNetworkStatsUseCase,
    GetNFTCollectionUseCase,
    GetNFTUseCase,
    GetOwnedNFTsUseCase,
    GetTokenInfoUseCase,
    GetTokenTransfersUseCase,
    GetTopTokensUseCase,
    GetTransactionUseCase,
    GetTxHistoryUseCase,
    ReadContractUseCase,
)


class ChainProvider(Provider):
    """
    Provider for the chain data accessor and its web3 clients.
    """

    component = "chain"

    @provide(scope=Scope.APP)
    def get_web3_clients(
        self,
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> dict[str, AsyncWeb3]:
        """
        Provide one Web3 client per configured network.

        Parameters
        ----------
        settings : Settings
            Application settings

        Returns
        -------
        dict[str, AsyncWeb3]
            Web3 clients keyed by network id
        """
        timeout = aiohttp.ClientTimeout(total=settings.rpc_timeout_seconds)
        return {
            network_id: AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                network.rpc_url,
                request_kwargs={"timeout": timeout},
                exception_retry_configuration=None,
            ))
            for network_id, network in settings.networks.items()
        }

    @provide(scope=Scope.APP)
    def get_accessor(
        self,
        web3_clients: Annotated[dict[str, AsyncWeb3], FromComponent("chain")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ChainDataAccessor:
        return Web3ChainAccessor(web3_clients=web3_clients, logger=logger)


class ExplorerProvider(Provider):
    """
    Provider for explorer services and use cases.
    """

    component = "explorer"

    @provide(scope=Scope.APP)
    def get_scanner(
        self,
        accessor: Annotated[ChainDataAccessor, FromComponent("chain")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> RecentTransactionScanner:
        return RecentTransactionScanner(accessor=accessor, logger=logger)

    @provide(scope=Scope.APP)
    def get_explorer_service(
        self,
        accessor: Annotated[ChainDataAccessor, FromComponent("chain")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ExplorerService:
        return ExplorerService(accessor=accessor, logger=logger)

    @provide(scope=Scope.APP)
    def get_token_service(
        self,
        accessor: Annotated[ChainDataAccessor, FromComponent("chain")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> TokenService:
        return TokenService(accessor=accessor, logger=logger)

    @provide(scope=Scope.APP)
    def get_nft_service(
        self,
        accessor: Annotated[ChainDataAccessor, FromComponent("chain")],
        logger: Annotated[logging.Logger, FromComponent("logger")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> NFTService:
        return NFTService(accessor=accessor, logger=logger, ipfs_gateway=settings.ipfs_gateway)

    @provide(scope=Scope.APP)
    def get_analytics_service(
        self,
        accessor: Annotated[ChainDataAccessor, FromComponent("chain")],
        logger: Annotated[logging.Logger, FromComponent("logger")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> AnalyticsService:
        return AnalyticsService(
            accessor=accessor,
            logger=logger,
            throttle_seconds=settings.history_throttle_seconds
        )

    @provide(scope=Scope.APP)
    def get_abi_service(
        self,
        accessor: Annotated[ChainDataAccessor, FromComponent("chain")],
        cache_service: Annotated[CacheService, FromComponent("cache")],
        settings: Annotated[Settings, FromComponent("environment")],
        logger: Annotated[logging.Logger, FromComponent("logger")]
    ) -> ABIService:
        """
        Provide ABI service.

        Parameters
        ----------
        accessor : ChainDataAccessor
            Accessor used to resolve proxy implementations
        cache_service : CacheService
            Cache service instance
        settings : Settings
            Application settings
        logger : logging.Logger
            Logger instance

        Returns
        -------
        ABIService
            ABI service instance
        """
        return ABIService(accessor=accessor, cache_service=cache_service, settings=settings, logger=logger)

    @provide(scope=Scope.REQUEST)
    def get_address_use_case(
        self,
        explorer_service: Annotated[ExplorerService, FromComponent("explorer")],
        scanner: Annotated[RecentTransactionScanner, FromComponent("explorer")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> GetAddressUseCase:
        return GetAddressUseCase(explorer_service=explorer_service, scanner=scanner, settings=settings)

    @provide(scope=Scope.REQUEST)
    def get_address_tokens_use_case(
        self,
        explorer_service: Annotated[ExplorerService, FromComponent("explorer")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> GetAddressTokensUseCase:
        return GetAddressTokensUseCase(explorer_service=explorer_service, settings=settings)

    @provide(scope=Scope.REQUEST)
    def get_block_use_case(
        self,
        explorer_service: Annotated[ExplorerService, FromComponent("explorer")],
        cache_service: Annotated[CacheService, FromComponent("cache")]
    ) -> GetBlockUseCase:
        return GetBlockUseCase(explorer_service=explorer_service, cache_service=cache_service)

    @provide(scope=Scope.REQUEST)
    def get_transaction_use_case(
        self,
        explorer_service: Annotated[ExplorerService, FromComponent("explorer")],
        cache_service: Annotated[CacheService, FromComponent("cache")]
    ) -> GetTransactionUseCase:
        return GetTransactionUseCase(explorer_service=explorer_service, cache_service=cache_service)

    @provide(scope=Scope.REQUEST)
    def get_contract_use_case(
        self,
        explorer_service: Annotated[ExplorerService, FromComponent("explorer")],
        abi_service: Annotated[ABIService, FromComponent("explorer")]
    ) -> GetContractUseCase:
        return GetContractUseCase(explorer_service=explorer_service, abi_service=abi_service)

    @provide(scope=Scope.REQUEST)
    def get_read_contract_use_case(
        self,
        explorer_service: Annotated[ExplorerService, FromComponent("explorer")]
    ) -> ReadContractUseCase:
        return ReadContractUseCase(explorer_service=explorer_service)

    @provide(scope=Scope.REQUEST)
    def get_token_info_use_case(
        self,
        token_service: Annotated[TokenService, FromComponent("explorer")],
        cache_service: Annotated[CacheService, FromComponent("cache")]
    ) -> GetTokenInfoUseCase:
        return GetTokenInfoUseCase(token_service=token_service, cache_service=cache_service)

    @provide(scope=Scope.REQUEST)
    def get_top_tokens_use_case(
        self,
        token_service: Annotated[TokenService, FromComponent("explorer")],
        cache_service: Annotated[CacheService, FromComponent("cache")],
        settings: Annotated[Settings, FromComponent("environment")]
    ) -> GetTopTokensUseCase:
        return GetTopTokensUseCase(token_service=token_service, cache_service=cache_service, settings=settings)

    @provide(scope=Scope.REQUEST)
    def get_token_transfers_use_case(
        self,
        token_service: Annotated[TokenService, FromComponent("explorer")]
    ) -> GetTokenTransfersUseCase:
        return GetTokenTransfersUseCase(token_service=token_service)

    @provide(scope=Scope.REQUEST)
    def get_nft_collection_use_case(
        self,
        nft_service: Annotated[NFTService, FromComponent("explorer")],
        cache_service: Annotated[CacheService, FromComponent("cache")]
    ) -> GetNFTCollectionUseCase:
        return GetNFTCollectionUseCase(nft_service=nft_service, cache_service=cache_service)

    @provide(scope=Scope.REQUEST)
    def get_owned_nfts_use_case(
        self,
        nft_service: Annotated[NFTService, FromComponent("explorer")]
    ) -> GetOwnedNFTsUseCase:
        return GetOwnedNFTsUseCase(nft_service=nft_service)

    @provide(scope=Scope.REQUEST)
    def get_nft_use_case(
        self,
        nft_service: Annotated[NFTService, FromComponent("explorer")]
    ) -> GetNFTUseCase:
        return GetNFTUseCase(nft_service=nft_service)

    @provide(scope=Scope.REQUEST)
    def get_network_stats_use_case(
        self,
        analytics_service: Annotated[AnalyticsService, FromComponent("explorer")]
    ) -> GetNetworkStatsUseCase:
        return GetNetworkStatsUseCase(analytics_service=analytics_service)

    @provide(scope=Scope.REQUEST)
    def get_gas_history_use_case(
        self,
        analytics_service: Annotated[AnalyticsService, FromComponent("explorer")]
    ) -> GetGasHistoryUseCase:
        return GetGasHistoryUseCase(analytics_service=analytics_service)

    @provide(scope=Scope.REQUEST)
    def get_tx_history_use_case(
        self,
        analytics_service: Annotated[AnalyticsService, FromComponent("explorer")]
    ) -> GetTxHistoryUseCase:
        return GetTxHistoryUseCase(analytics_service=analytics_service)
