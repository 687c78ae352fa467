from fastapi import APIRouter, Path, Query
from dishka.integrations.fastapi import inject
from dishka import FromComponent
from typing import Annotated
from explorer.schemas import (
    ADDRESS_PATTERN,
    BLOCK_PATTERN,
    TX_HASH_PATTERN,
    AddressResponse,
    ApiResponse,
    BlockResponse,
    ContractResponse,
    GasPricePoint,
    NetworkId,
    NetworkStatsResponse,
    NFTCollectionResponse,
    NFTItemResponse,
    ReadContractRequest,
    ReadContractResponse,
    TokenBalanceResponse,
    TokenResponse,
    TokenTransferResponse,
    TransactionResponse,
    TxVolumePoint,
)
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

router = APIRouter(prefix="/api")

Network = Annotated[NetworkId, Query(description="Network to query")]
AddressPath = Annotated[str, Path(pattern=ADDRESS_PATTERN, description="Account or contract address")]
AddressQuery = Annotated[str, Query(pattern=ADDRESS_PATTERN, description="Contract address")]


@router.get("/address/{address}", response_model=ApiResponse[AddressResponse], tags=["Address"])
@inject
async def get_address(
    address: AddressPath,
    use_case: Annotated[GetAddressUseCase, FromComponent("explorer")],
    network: Network = "ethereum",
    limit: Annotated[int | None, Query(ge=0, le=100, description="Recent transactions to return")] = None,
    max_blocks_back: Annotated[int | None, Query(ge=0, le=10000, description="Scan depth in blocks")] = None
) -> ApiResponse[AddressResponse]:
    """
    Get balance, nonce and recent transactions of an address.

    Parameters
    ----------
    address : str
        Address to look up
    use_case : GetAddressUseCase
        Use case for the address overview
    network : str
        Network name
    limit : int | None
        Number of recent transactions
    max_blocks_back : int | None
        How many blocks below the head to scan

    Returns
    -------
    ApiResponse[AddressResponse]
        Address overview
    """
    return ApiResponse(data=await use_case(
        address=address,
        network=network,
        limit=limit,
        max_blocks_back=max_blocks_back
    ))


@router.get("/address/{address}/tokens", response_model=ApiResponse[list[TokenBalanceResponse]], tags=["Address"])
@inject
async def get_address_tokens(
    address: AddressPath,
    use_case: Annotated[GetAddressTokensUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[list[TokenBalanceResponse]]:
    """
    Get non-zero balances of the network's popular ERC-20 tokens.
    """
    return ApiResponse(data=await use_case(address=address, network=network))


@router.get("/block/{block}", response_model=ApiResponse[BlockResponse], tags=["Block"])
@inject
async def get_block(
    block: Annotated[str, Path(pattern=BLOCK_PATTERN, description="Block number or 'latest'")],
    use_case: Annotated[GetBlockUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[BlockResponse]:
    """
    Get a block by number, or the latest block.
    """
    identifier = "latest" if block == "latest" else int(block)
    return ApiResponse(data=await use_case(block=identifier, network=network))


@router.get("/transaction/{tx_hash}", response_model=ApiResponse[TransactionResponse], tags=["Transaction"])
@inject
async def get_transaction(
    tx_hash: Annotated[str, Path(pattern=TX_HASH_PATTERN, description="Transaction hash")],
    use_case: Annotated[GetTransactionUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[TransactionResponse]:
    """
    Get a transaction with its receipt data.
    """
    return ApiResponse(data=await use_case(tx_hash=tx_hash, network=network))


@router.get("/contract/{address}", response_model=ApiResponse[ContractResponse], tags=["Contract"])
@inject
async def get_contract(
    address: AddressPath,
    use_case: Annotated[GetContractUseCase, FromComponent("explorer")],
    network: Network = "ethereum",
    include_abi: Annotated[bool, Query(description="Attach the verified ABI from the explorer")] = False
) -> ApiResponse[ContractResponse]:
    """
    Get bytecode and balance of a contract.
    """
    return ApiResponse(data=await use_case(address=address, network=network, include_abi=include_abi))


@router.post("/contract/{address}/read", response_model=ApiResponse[ReadContractResponse], tags=["Contract"])
@inject
async def read_contract(
    address: AddressPath,
    request: ReadContractRequest,
    use_case: Annotated[ReadContractUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[ReadContractResponse]:
    """
    Call a view function that takes no arguments.

    Parameters
    ----------
    address : str
        Contract address
    request : ReadContractRequest
        ABI entry of the function
    use_case : ReadContractUseCase
        Use case for contract reads
    network : str
        Network name

    Returns
    -------
    ApiResponse[ReadContractResponse]
        Stringified call result
    """
    return ApiResponse(data=await use_case(address=address, network=network, abi_item=request.abi_item))


@router.get("/tokens/top", response_model=ApiResponse[list[TokenResponse]], tags=["Tokens"])
@inject
async def get_top_tokens(
    use_case: Annotated[GetTopTokensUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[list[TokenResponse]]:
    return ApiResponse(data=await use_case(network=network))


@router.get("/tokens/info", response_model=ApiResponse[TokenResponse], tags=["Tokens"])
@inject
async def get_token_info(
    address: AddressQuery,
    use_case: Annotated[GetTokenInfoUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[TokenResponse]:
    return ApiResponse(data=await use_case(address=address, network=network))


@router.get("/tokens/transfers", response_model=ApiResponse[list[TokenTransferResponse]], tags=["Tokens"])
@inject
async def get_token_transfers(
    address: AddressQuery,
    use_case: Annotated[GetTokenTransfersUseCase, FromComponent("explorer")],
    network: Network = "ethereum",
    limit: Annotated[int, Query(ge=1, le=100)] = 10
) -> ApiResponse[list[TokenTransferResponse]]:
    """
    Get the latest transfers of a token within the last 1000 blocks.
    """
    return ApiResponse(data=await use_case(address=address, network=network, limit=limit))


@router.get("/nft/collection", response_model=ApiResponse[NFTCollectionResponse], tags=["NFT"])
@inject
async def get_nft_collection(
    address: AddressQuery,
    use_case: Annotated[GetNFTCollectionUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[NFTCollectionResponse]:
    return ApiResponse(data=await use_case(address=address, network=network))


@router.get("/nft/owned", response_model=ApiResponse[list[NFTItemResponse]], tags=["NFT"])
@inject
async def get_owned_nfts(
    contract: AddressQuery,
    owner: Annotated[str, Query(pattern=ADDRESS_PATTERN, description="Holder address")],
    use_case: Annotated[GetOwnedNFTsUseCase, FromComponent("explorer")],
    network: Network = "ethereum",
    limit: Annotated[int, Query(ge=1, le=100)] = 10
) -> ApiResponse[list[NFTItemResponse]]:
    """
    Get tokens of a collection held by an owner.
    """
    return ApiResponse(data=await use_case(owner=owner, contract=contract, network=network, limit=limit))


@router.get("/nft/token", response_model=ApiResponse[NFTItemResponse], tags=["NFT"])
@inject
async def get_nft(
    contract: AddressQuery,
    token_id: Annotated[int, Query(ge=0)],
    use_case: Annotated[GetNFTUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[NFTItemResponse]:
    """
    Get owner and metadata of a single token.
    """
    return ApiResponse(data=await use_case(contract=contract, token_id=token_id, network=network))


@router.get("/dashboard/stats", response_model=ApiResponse[NetworkStatsResponse], tags=["Dashboard"])
@inject
async def get_network_stats(
    use_case: Annotated[GetNetworkStatsUseCase, FromComponent("explorer")],
    network: Network = "ethereum"
) -> ApiResponse[NetworkStatsResponse]:
    return ApiResponse(data=await use_case(network=network))


@router.get("/dashboard/gas-history", response_model=ApiResponse[list[GasPricePoint]], tags=["Dashboard"])
@inject
async def get_gas_history(
    use_case: Annotated[GetGasHistoryUseCase, FromComponent("explorer")],
    network: Network = "ethereum",
    hours: Annotated[int, Query(ge=1, le=168)] = 24
) -> ApiResponse[list[GasPricePoint]]:
    return ApiResponse(data=await use_case(network=network, hours=hours))


@router.get("/dashboard/tx-history", response_model=ApiResponse[list[TxVolumePoint]], tags=["Dashboard"])
@inject
async def get_tx_history(
    use_case: Annotated[GetTxHistoryUseCase, FromComponent("explorer")],
    network: Network = "ethereum",
    days: Annotated[int, Query(ge=1, le=30)] = 7
) -> ApiResponse[list[TxVolumePoint]]:
    return ApiResponse(data=await use_case(network=network, days=days))
