from pydantic import BaseModel, ConfigDict, Field


class TransactionEntity(BaseModel):
    """
    Transaction as returned by the chain node.

    Attributes
    ----------
    hash : str
        Transaction hash
    sender : str
        Sender address (``from``)
    to : str | None
        Recipient address, None for contract creation
    value : int
        Transferred value in wei
    gas_price : int
        Gas price in wei
    gas_limit : int
        Gas limit
    nonce : int
        Sender nonce
    input : str
        Call data as 0x-prefixed hex
    block_number : int | None
        Inclusion block, None while pending
    block_hash : str | None
        Inclusion block hash
    timestamp : int
        Inclusion block timestamp (seconds)
    confirmations : int
        Blocks mined on top of the inclusion block
    gas_used : int | None
        Gas used, from the receipt
    status : int | None
        Receipt status (1 success, 0 reverted)
    """
    hash: str
    sender: str
    to: str | None = None
    value: int = 0
    gas_price: int = 0
    gas_limit: int = 0
    nonce: int = 0
    input: str = "0x"
    block_number: int | None = None
    block_hash: str | None = None
    timestamp: int = 0
    confirmations: int = 0
    gas_used: int | None = None
    status: int | None = None

    model_config = ConfigDict(from_attributes=True)

    def involves(self, address: str) -> bool:
        """Whether ``address`` is the sender or the recipient, ignoring case."""
        target = address.lower()
        if self.sender.lower() == target:
            return True
        return self.to is not None and self.to.lower() == target


class BlockEntity(BaseModel):
    """
    Block with either full transaction bodies or transaction hashes.

    Attributes
    ----------
    number : int
        Block number
    hash : str
        Block hash
    parent_hash : str
        Parent block hash
    timestamp : int
        Block timestamp (seconds)
    miner : str
        Fee recipient
    gas_used : int
        Gas used by the block
    gas_limit : int
        Block gas limit
    base_fee_per_gas : int | None
        EIP-1559 base fee, None before London
    transactions : list[TransactionEntity]
        Full transactions (only when fetched with bodies)
    transaction_hashes : list[str]
        Hashes of included transactions, in block order
    """
    number: int
    hash: str
    parent_hash: str = ""
    timestamp: int = 0
    miner: str = ""
    gas_used: int = 0
    gas_limit: int = 0
    base_fee_per_gas: int | None = None
    transactions: list[TransactionEntity] = Field(default_factory=list)
    transaction_hashes: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def transaction_count(self) -> int:
        return len(self.transaction_hashes) or len(self.transactions)


class ReceiptEntity(BaseModel):
    transaction_hash: str
    block_number: int
    gas_used: int
    status: int | None = None

    model_config = ConfigDict(from_attributes=True)


class TransferEventEntity(BaseModel):
    """
    Decoded ERC-20 / ERC-721 ``Transfer`` log.

    ``amount`` holds the value for ERC-20 and the token id for ERC-721.
    """
    sender: str
    recipient: str
    amount: int
    transaction_hash: str
    block_number: int
    log_index: int

    model_config = ConfigDict(from_attributes=True)
