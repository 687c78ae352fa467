from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from explorer.entities import BlockEntity, TransactionEntity

T = TypeVar("T")

NetworkId = Literal["ethereum", "base", "arbitrum"]

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"
TX_HASH_PATTERN = r"^0x[0-9a-fA-F]{64}$"
BLOCK_PATTERN = r"^(latest|\d+)$"


class ApiResponse(BaseModel, Generic[T]):
    """
    Success envelope shared by all endpoints.

    Attributes
    ----------
    success : bool
        Always True, failures go through the exception handlers
    data : T
        Payload
    """
    success: bool = True
    data: T


class TransactionResponse(BaseModel):
    """
    Transaction view model.

    Wei amounts are strings so that clients without big integers keep
    full precision. Pending transactions have no block number or hash.
    """
    hash: str
    sender: str = Field(alias="from")
    to: str | None
    value: str
    gas_price: str
    gas_limit: str
    gas_used: str | None = None
    nonce: int
    block_number: int | None = None
    block_hash: str | None = None
    timestamp: int
    confirmations: int
    input: str
    status: int | None = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @classmethod
    def from_entity(cls, tx: TransactionEntity) -> "TransactionResponse":
        return cls(
            hash=tx.hash,
            sender=tx.sender,
            to=tx.to,
            value=str(tx.value),
            gas_price=str(tx.gas_price),
            gas_limit=str(tx.gas_limit),
            gas_used=str(tx.gas_used) if tx.gas_used is not None else None,
            nonce=tx.nonce,
            block_number=tx.block_number,
            block_hash=tx.block_hash,
            timestamp=tx.timestamp,
            confirmations=tx.confirmations,
            input=tx.input,
            status=tx.status,
        )


class AddressResponse(BaseModel):
    """
    Address overview with its recent transactions.

    Attributes
    ----------
    address : str
        Address as requested
    balance : str
        Native balance in wei
    balance_formatted : str
        Native balance in ether
    transaction_count : int
        Number of transactions sent (nonce)
    is_contract : bool
        Whether code is deployed at the address
    transactions : list[TransactionResponse]
        Recent transactions, newest first
    """
    address: str
    balance: str
    balance_formatted: str
    transaction_count: int
    is_contract: bool
    transactions: list[TransactionResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class BlockResponse(BaseModel):
    number: int
    hash: str
    timestamp: int
    parent_hash: str
    miner: str
    gas_used: str
    gas_limit: str
    base_fee_per_gas: str | None = None
    transactions: list[str]
    transaction_count: int

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, block: BlockEntity) -> "BlockResponse":
        return cls(
            number=block.number,
            hash=block.hash,
            timestamp=block.timestamp,
            parent_hash=block.parent_hash,
            miner=block.miner,
            gas_used=str(block.gas_used),
            gas_limit=str(block.gas_limit),
            base_fee_per_gas=str(block.base_fee_per_gas) if block.base_fee_per_gas is not None else None,
            transactions=block.transaction_hashes,
            transaction_count=block.transaction_count,
        )


class ContractResponse(BaseModel):
    """
    Contract overview.

    Attributes
    ----------
    address : str
        Contract address
    bytecode : str
        Deployed bytecode, ``0x`` for externally owned accounts
    is_contract : bool
        Whether code is deployed at the address
    balance : str
        Native balance in wei
    abi : list[dict] | None
        Verified ABI from the explorer, when requested and available
    """
    address: str
    bytecode: str
    is_contract: bool
    balance: str
    abi: list[dict[str, Any]] | None = None

    model_config = ConfigDict(from_attributes=True)


class AbiParameter(BaseModel):
    name: str = ""
    type: str


class AbiItem(BaseModel):
    """
    Single ABI entry, as pasted into the contract reader.
    """
    type: str = "function"
    name: str | None = None
    inputs: list[AbiParameter] = Field(default_factory=list)
    outputs: list[AbiParameter] = Field(default_factory=list)
    stateMutability: str | None = None
    constant: bool | None = None

    @property
    def is_read_only(self) -> bool:
        return self.type == "function" and (
            self.stateMutability in ("view", "pure") or bool(self.constant)
        )


class ReadContractRequest(BaseModel):
    """
    Request schema for calling a read-only contract function.

    Attributes
    ----------
    abi_item : AbiItem
        The function to call; it must take no arguments
    """
    abi_item: AbiItem

    @field_validator("abi_item")
    @classmethod
    def validate_function(cls, v: AbiItem) -> AbiItem:
        if not v.name:
            raise ValueError("ABI item must have a name")
        if not v.is_read_only:
            raise ValueError("Only view or pure functions can be read")
        if v.inputs:
            raise ValueError("Only functions without arguments can be read")
        return v


class ReadContractResponse(BaseModel):
    function: str
    result: str


class TokenResponse(BaseModel):
    address: str
    name: str
    symbol: str
    decimals: int
    total_supply: str

    model_config = ConfigDict(from_attributes=True)


class TokenBalanceResponse(BaseModel):
    address: str
    name: str
    symbol: str
    decimals: int
    balance: str
    balance_formatted: str

    model_config = ConfigDict(from_attributes=True)


class TokenTransferResponse(BaseModel):
    sender: str = Field(alias="from")
    to: str
    value: str
    timestamp: int
    tx_hash: str

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class NFTCollectionResponse(BaseModel):
    address: str
    name: str
    symbol: str
    total_supply: int

    model_config = ConfigDict(from_attributes=True)


class NFTItemResponse(BaseModel):
    """
    NFT with the metadata resolved from its token URI.

    Attributes
    ----------
    token_id : str
        Token id as a decimal string
    contract_address : str
        Collection contract
    owner : str
        Current owner
    name, description, image : str | None
        Metadata fields, when the token URI could be resolved
    attributes : list[dict] | None
        Metadata traits
    """
    token_id: str
    contract_address: str
    owner: str
    name: str | None = None
    description: str | None = None
    image: str | None = None
    attributes: list[dict[str, Any]] | None = None

    model_config = ConfigDict(from_attributes=True)


class GasPriceResponse(BaseModel):
    slow: str
    standard: str
    fast: str
    instant: str
    base_fee: str | None = None
    timestamp: int


class NetworkStatsResponse(BaseModel):
    """
    Dashboard figures for a network.

    Attributes
    ----------
    block_number : int
        Current height
    block_time : float
        Average block time in seconds over the last 100 blocks
    gas_price : GasPriceResponse
        Gas price tiers in gwei
    tps : float
        Transactions per second of the latest block
    active_addresses_24h : int
        Estimated active addresses
    transactions_24h : int
        Estimated transactions in the last 24 hours
    volume_24h : str
        Native volume, not tracked yet
    """
    block_number: int
    block_time: float
    gas_price: GasPriceResponse
    tps: float
    active_addresses_24h: int
    transactions_24h: int
    volume_24h: str


class GasPricePoint(BaseModel):
    timestamp: int
    gas_price: float


class TxVolumePoint(BaseModel):
    timestamp: int
    count: int
