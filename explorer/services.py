import asyncio
import logging

from web3 import Web3

from core.exceptions import (
    BaseCustomException,
    BadRequestException,
    BlockNotFoundException,
    TransactionNotFoundException,
)
from explorer.abis import ERC20_ABI
from explorer.accessor import BlockIdentifier, ChainDataAccessor
from explorer.entities import BlockEntity, TransactionEntity
from explorer.formatting import format_ether, format_units
from explorer.schemas import (
    AbiItem,
    AddressResponse,
    ContractResponse,
    ReadContractResponse,
    TokenBalanceResponse,
)


class ExplorerService:
    """
    Point lookups for addresses, blocks, transactions and contracts.

    Parameters
    ----------
    accessor : ChainDataAccessor
        Chain data accessor
    logger : logging.Logger
        Logger instance
    """

    def __init__(self, accessor: ChainDataAccessor, logger: logging.Logger):
        self.accessor = accessor
        self.logger = logger

    async def get_address_info(self, address: str, network: str) -> AddressResponse:
        """
        Get balance, nonce and contract flag of an address.

        Parameters
        ----------
        address : str
            Address
        network : str
            Network name

        Returns
        -------
        AddressResponse
            Address overview without transactions
        """
        balance, code, tx_count = await asyncio.gather(
            self.accessor.balance(network, address),
            self.accessor.code(network, address),
            self.accessor.transaction_count(network, address),
        )
        return AddressResponse(
            address=address,
            balance=str(balance),
            balance_formatted=format_ether(balance),
            transaction_count=tx_count,
            is_contract=code not in ("0x", ""),
        )

    async def get_block_info(self, block: BlockIdentifier, network: str) -> BlockEntity:
        """
        Get a block header with its transaction hashes.

        Raises
        ------
        BlockNotFoundException
            If the node does not know the block
        """
        entity = await self.accessor.block(network, block)
        if entity is None:
            raise BlockNotFoundException()
        return entity

    async def get_transaction(self, tx_hash: str, network: str) -> TransactionEntity:
        """
        Get a transaction enriched with its receipt and block timestamp.

        Parameters
        ----------
        tx_hash : str
            Transaction hash
        network : str
            Network name

        Returns
        -------
        TransactionEntity
            Transaction; pending transactions have no block and no receipt

        Raises
        ------
        TransactionNotFoundException
            If the node does not know the transaction
        """
        tx, receipt = await asyncio.gather(
            self.accessor.transaction(network, tx_hash),
            self.accessor.transaction_receipt(network, tx_hash),
        )
        if tx is None:
            raise TransactionNotFoundException()

        update = {}
        if tx.block_number is not None:
            block, height = await asyncio.gather(
                self.accessor.block(network, tx.block_number),
                self.accessor.current_height(network),
            )
            if block is not None:
                update["timestamp"] = block.timestamp
            update["confirmations"] = max(0, height - tx.block_number + 1)
        if receipt is not None:
            update["gas_used"] = receipt.gas_used
            update["status"] = receipt.status

        return tx.model_copy(update=update)

    async def get_confirmations(self, block_number: int, network: str) -> int:
        """
        Count blocks from ``block_number`` up to the head, inclusive.

        Parameters
        ----------
        block_number : int
            Inclusion block
        network : str
            Network name

        Returns
        -------
        int
            Confirmations, 0 when the block is above the known head
        """
        height = await self.accessor.current_height(network)
        return max(0, height - block_number + 1)

    async def get_contract_info(self, address: str, network: str) -> ContractResponse:
        code, balance = await asyncio.gather(
            self.accessor.code(network, address),
            self.accessor.balance(network, address),
        )
        return ContractResponse(
            address=address,
            bytecode=code,
            is_contract=code not in ("0x", ""),
            balance=str(balance),
        )

    async def read_contract(self, address: str, network: str, abi_item: AbiItem) -> ReadContractResponse:
        """
        Call a zero-argument view or pure function.

        Parameters
        ----------
        address : str
            Contract address
        network : str
            Network name
        abi_item : AbiItem
            ABI entry of the function

        Returns
        -------
        ReadContractResponse
            Function name and stringified result
        """
        if not abi_item.name or not abi_item.is_read_only or abi_item.inputs:
            raise BadRequestException("error.contract.not_readable")

        result = await self.accessor.call(
            network, address, [abi_item.model_dump(exclude_none=True)], abi_item.name
        )
        return ReadContractResponse(function=abi_item.name, result=_stringify(result))

    async def get_token_balances(
        self,
        owner: str,
        network: str,
        token_addresses: list[str]
    ) -> list[TokenBalanceResponse]:
        """
        Get non-zero ERC-20 balances of ``owner`` over a token list.

        Tokens that fail to answer are logged and left out.
        """
        tokens = []
        for token_address in token_addresses:
            try:
                name, symbol, decimals, balance = await asyncio.gather(
                    self.accessor.call(network, token_address, ERC20_ABI, "name"),
                    self.accessor.call(network, token_address, ERC20_ABI, "symbol"),
                    self.accessor.call(network, token_address, ERC20_ABI, "decimals"),
                    self.accessor.call(network, token_address, ERC20_ABI, "balanceOf", Web3.to_checksum_address(owner)),
                )
            except BaseCustomException as e:
                self.logger.warning(f"Error fetching token {token_address} on {network}: {e}")
                continue

            if balance > 0:
                tokens.append(TokenBalanceResponse(
                    address=token_address,
                    name=name,
                    symbol=symbol,
                    decimals=int(decimals),
                    balance=str(balance),
                    balance_formatted=format_units(balance, int(decimals)),
                ))
        return tokens


def _stringify(value) -> str:
    if isinstance(value, bytes):
        return Web3.to_hex(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_stringify(v) for v in value) + "]"
    return str(value)
