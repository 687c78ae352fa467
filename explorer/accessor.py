import asyncio
import logging
from typing import Any, Awaitable, Literal, Protocol, TypeVar

import aiohttp
from web3 import AsyncWeb3, Web3
from web3.exceptions import (
    BadFunctionCallOutput,
    BlockNotFound,
    ContractLogicError,
    LogTopicError,
    MismatchedABI,
    TransactionNotFound,
    Web3ValidationError,
    Web3Exception,
)

from core.exceptions import (
    ContractCallException,
    InvalidAddressException,
    TransientFetchException,
    UnavailableNetworkException,
)
from explorer.abis import TRANSFER_EVENT_SIGNATURE
from explorer.entities import (
    BlockEntity,
    ReceiptEntity,
    TransactionEntity,
    TransferEventEntity,
)

T = TypeVar("T")

BlockIdentifier = int | Literal["latest"]

TRANSPORT_ERRORS = (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError, ValueError)


class ChainDataAccessor(Protocol):
    """
    Read-only capability interface over the remote chain nodes.

    Every operation takes the network id first and raises
    ``UnavailableNetworkException`` for an unknown network and
    ``TransientFetchException`` when the node cannot be reached or
    answers garbage. Missing blocks and transactions are reported as
    ``None``.
    """

    async def current_height(self, network: str) -> int: ...

    async def block_with_transactions(self, network: str, number: int) -> BlockEntity | None: ...

    async def block(self, network: str, number: BlockIdentifier) -> BlockEntity | None: ...

    async def balance(self, network: str, address: str, block: BlockIdentifier = "latest") -> int: ...

    async def code(self, network: str, address: str) -> str: ...

    async def transaction_count(self, network: str, address: str) -> int: ...

    async def transaction(self, network: str, tx_hash: str) -> TransactionEntity | None: ...

    async def transaction_receipt(self, network: str, tx_hash: str) -> ReceiptEntity | None: ...

    async def storage_at(self, network: str, address: str, slot: str) -> str: ...

    async def gas_price(self, network: str) -> int: ...

    async def call(
        self,
        network: str,
        contract_address: str,
        abi: list[dict],
        function_name: str,
        *args: Any
    ) -> Any: ...

    async def transfer_events(
        self,
        network: str,
        contract_address: str,
        abi: list[dict],
        from_block: int,
        to_block: int,
        recipient: str | None = None
    ) -> list[TransferEventEntity]: ...


def _hex(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return Web3.to_hex(value)


def to_transaction_entity(tx: Any, block: Any | None = None) -> TransactionEntity:
    """
    Build a TransactionEntity from a web3 transaction mapping.

    Parameters
    ----------
    tx : Any
        Transaction AttributeDict returned by web3
    block : Any | None
        Inclusion block, used for the timestamp when given

    Returns
    -------
    TransactionEntity
        Normalized transaction
    """
    block_hash = tx.get("blockHash")
    return TransactionEntity(
        hash=_hex(tx["hash"]),
        sender=tx["from"],
        to=tx.get("to"),
        value=int(tx.get("value", 0)),
        gas_price=int(tx.get("gasPrice") or 0),
        gas_limit=int(tx.get("gas", 0)),
        nonce=int(tx.get("nonce", 0)),
        input=_hex(tx.get("input")) or "0x",
        block_number=tx.get("blockNumber"),
        block_hash=_hex(block_hash) if block_hash is not None else None,
        timestamp=int(block["timestamp"]) if block is not None else 0,
    )


def to_block_entity(block: Any) -> BlockEntity:
    """
    Build a BlockEntity from a web3 block mapping.

    Full transaction bodies are normalized when present, otherwise only
    the hashes are kept.
    """
    transactions = []
    hashes = []
    for item in block.get("transactions", []):
        if isinstance(item, (bytes, str)):
            hashes.append(_hex(item))
        else:
            entity = to_transaction_entity(item, block)
            transactions.append(entity)
            hashes.append(entity.hash)

    base_fee = block.get("baseFeePerGas")
    return BlockEntity(
        number=int(block["number"]),
        hash=_hex(block["hash"]),
        parent_hash=_hex(block.get("parentHash")),
        timestamp=int(block["timestamp"]),
        miner=block.get("miner") or "",
        gas_used=int(block.get("gasUsed", 0)),
        gas_limit=int(block.get("gasLimit", 0)),
        base_fee_per_gas=int(base_fee) if base_fee is not None else None,
        transactions=transactions,
        transaction_hashes=hashes,
    )


class Web3ChainAccessor:
    """
    ChainDataAccessor backed by one AsyncWeb3 client per network.

    Single attempt, fail fast: nothing is retried or cached here.

    Parameters
    ----------
    web3_clients : dict[str, AsyncWeb3]
        Web3 clients keyed by network id
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, web3_clients: dict[str, AsyncWeb3], logger: logging.Logger):
        self.web3_clients = web3_clients
        self.logger = logger

    def _get_client(self, network: str) -> AsyncWeb3:
        """
        Get Web3 client for specified network.

        Raises
        ------
        UnavailableNetworkException
            If network is not configured
        """
        if network not in self.web3_clients:
            raise UnavailableNetworkException()
        return self.web3_clients[network]

    def _checksum(self, address: str) -> str:
        try:
            return Web3.to_checksum_address(address)
        except (ValueError, TypeError):
            raise InvalidAddressException()

    async def _fetch(self, network: str, what: str, request: Awaitable[T]) -> T:
        try:
            return await request
        except TRANSPORT_ERRORS as e:
            self.logger.warning(f"[{network}] {what} failed: {e}")
            raise TransientFetchException() from e

    async def current_height(self, network: str) -> int:
        web3 = self._get_client(network)
        return int(await self._fetch(network, "eth_blockNumber", web3.eth.block_number))

    async def _get_block(self, network: str, number: BlockIdentifier, full: bool) -> BlockEntity | None:
        web3 = self._get_client(network)
        try:
            raw = await web3.eth.get_block(number, full_transactions=full)
        except BlockNotFound:
            return None
        except TRANSPORT_ERRORS as e:
            self.logger.warning(f"[{network}] eth_getBlockByNumber({number}) failed: {e}")
            raise TransientFetchException() from e
        if raw is None:
            return None
        return to_block_entity(raw)

    async def block_with_transactions(self, network: str, number: int) -> BlockEntity | None:
        """
        Fetch a block with full transaction bodies.

        Returns
        -------
        BlockEntity | None
            The block, or None when the node has no record of it
        """
        return await self._get_block(network, number, full=True)

    async def block(self, network: str, number: BlockIdentifier) -> BlockEntity | None:
        return await self._get_block(network, number, full=False)

    async def balance(self, network: str, address: str, block: BlockIdentifier = "latest") -> int:
        web3 = self._get_client(network)
        checksum_address = self._checksum(address)
        return int(await self._fetch(network, "eth_getBalance", web3.eth.get_balance(checksum_address, block)))

    async def code(self, network: str, address: str) -> str:
        web3 = self._get_client(network)
        checksum_address = self._checksum(address)
        code = await self._fetch(network, "eth_getCode", web3.eth.get_code(checksum_address))
        return _hex(code) or "0x"

    async def transaction_count(self, network: str, address: str) -> int:
        web3 = self._get_client(network)
        checksum_address = self._checksum(address)
        return int(await self._fetch(
            network, "eth_getTransactionCount", web3.eth.get_transaction_count(checksum_address)
        ))

    async def transaction(self, network: str, tx_hash: str) -> TransactionEntity | None:
        web3 = self._get_client(network)
        try:
            raw = await web3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        except TRANSPORT_ERRORS as e:
            self.logger.warning(f"[{network}] eth_getTransactionByHash({tx_hash}) failed: {e}")
            raise TransientFetchException() from e
        return to_transaction_entity(raw)

    async def transaction_receipt(self, network: str, tx_hash: str) -> ReceiptEntity | None:
        web3 = self._get_client(network)
        try:
            raw = await web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except TRANSPORT_ERRORS as e:
            self.logger.warning(f"[{network}] eth_getTransactionReceipt({tx_hash}) failed: {e}")
            raise TransientFetchException() from e
        return ReceiptEntity(
            transaction_hash=_hex(raw["transactionHash"]),
            block_number=int(raw["blockNumber"]),
            gas_used=int(raw["gasUsed"]),
            status=raw.get("status"),
        )

    async def storage_at(self, network: str, address: str, slot: str) -> str:
        web3 = self._get_client(network)
        checksum_address = self._checksum(address)
        value = await self._fetch(
            network, "eth_getStorageAt", web3.eth.get_storage_at(checksum_address, int(slot, 16))
        )
        return _hex(value)

    async def gas_price(self, network: str) -> int:
        web3 = self._get_client(network)
        return int(await self._fetch(network, "eth_gasPrice", web3.eth.gas_price))

    async def call(
        self,
        network: str,
        contract_address: str,
        abi: list[dict],
        function_name: str,
        *args: Any
    ) -> Any:
        """
        Call a read-only contract function.

        Parameters
        ----------
        network : str
            Network id
        contract_address : str
            Contract address
        abi : list[dict]
            ABI containing the function
        function_name : str
            Function to call
        *args : Any
            Function arguments

        Returns
        -------
        Any
            Decoded return value

        Raises
        ------
        ContractCallException
            If the call reverts, the function is missing or the output
            cannot be decoded
        """
        web3 = self._get_client(network)
        contract = web3.eth.contract(address=self._checksum(contract_address), abi=abi)
        try:
            function = getattr(contract.functions, function_name)
            return await function(*args).call()
        except (ContractLogicError, BadFunctionCallOutput, MismatchedABI, Web3ValidationError, AttributeError) as e:
            self.logger.debug(f"[{network}] {contract_address}.{function_name}() failed: {e}")
            raise ContractCallException() from e
        except TRANSPORT_ERRORS as e:
            self.logger.warning(f"[{network}] eth_call {contract_address}.{function_name}() failed: {e}")
            raise TransientFetchException() from e

    async def transfer_events(
        self,
        network: str,
        contract_address: str,
        abi: list[dict],
        from_block: int,
        to_block: int,
        recipient: str | None = None
    ) -> list[TransferEventEntity]:
        """
        Fetch and decode ``Transfer`` logs of a token contract.

        Parameters
        ----------
        network : str
            Network id
        contract_address : str
            Token contract address
        abi : list[dict]
            ABI holding the Transfer event (ERC-20 or ERC-721 flavour)
        from_block : int
            First block, inclusive
        to_block : int
            Last block, inclusive
        recipient : str | None
            Only transfers to this address when given

        Returns
        -------
        list[TransferEventEntity]
            Decoded transfers in log order
        """
        web3 = self._get_client(network)
        checksum_address = self._checksum(contract_address)
        contract = web3.eth.contract(address=checksum_address, abi=abi)

        topics: list[Any] = [Web3.to_hex(Web3.keccak(text=TRANSFER_EVENT_SIGNATURE))]
        if recipient is not None:
            topics.append(None)
            topics.append("0x" + self._checksum(recipient)[2:].lower().rjust(64, "0"))

        logs = await self._fetch(network, f"eth_getLogs({from_block}-{to_block})", web3.eth.get_logs({
            "address": checksum_address,
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": topics,
        }))

        event = contract.events.Transfer()
        transfers = []
        for log in logs:
            try:
                decoded = event.process_log(log)
            except (MismatchedABI, LogTopicError, ValueError) as e:
                # ERC-20 and ERC-721 share the topic but not the indexed layout
                self.logger.debug(f"Skipping undecodable Transfer log: {e}")
                continue
            sender, receiver, amount = list(decoded["args"].values())
            transfers.append(TransferEventEntity(
                sender=sender,
                recipient=receiver,
                amount=int(amount),
                transaction_hash=_hex(decoded["transactionHash"]),
                block_number=int(decoded["blockNumber"]),
                log_index=int(decoded["logIndex"]),
            ))
        return transfers
