import asyncio
import logging

from core.exceptions import BaseCustomException
from explorer.abis import ERC20_ABI
from explorer.accessor import ChainDataAccessor
from explorer.schemas import TokenResponse, TokenTransferResponse

TRANSFER_LOOKBACK_BLOCKS = 1000


class TokenService:
    """
    ERC-20 token lookups.

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

    async def get_token_info(self, token_address: str, network: str) -> TokenResponse:
        """
        Read name, symbol, decimals and total supply of a token.

        Parameters
        ----------
        token_address : str
            Token contract address
        network : str
            Network name

        Returns
        -------
        TokenResponse
            Token description
        """
        name, symbol, decimals, total_supply = await asyncio.gather(
            self.accessor.call(network, token_address, ERC20_ABI, "name"),
            self.accessor.call(network, token_address, ERC20_ABI, "symbol"),
            self.accessor.call(network, token_address, ERC20_ABI, "decimals"),
            self.accessor.call(network, token_address, ERC20_ABI, "totalSupply"),
        )
        return TokenResponse(
            address=token_address,
            name=name,
            symbol=symbol,
            decimals=int(decimals),
            total_supply=str(total_supply),
        )

    async def get_top_tokens(self, network: str, token_addresses: list[str]) -> list[TokenResponse]:
        """
        Read the configured popular tokens of a network.

        Tokens that fail to answer are logged and skipped.
        """
        tokens = []
        for address in token_addresses:
            try:
                tokens.append(await self.get_token_info(address, network))
            except BaseCustomException as e:
                self.logger.warning(f"Error fetching token {address} on {network}: {e}")
        return tokens

    async def get_token_transfers(
        self,
        token_address: str,
        network: str,
        limit: int = 10
    ) -> list[TokenTransferResponse]:
        """
        Get the latest ``Transfer`` events of a token.

        Only the last 1000 blocks are searched.

        Parameters
        ----------
        token_address : str
            Token contract address
        network : str
            Network name
        limit : int
            Maximum number of transfers

        Returns
        -------
        list[TokenTransferResponse]
            Transfers, newest first
        """
        if limit <= 0:
            return []

        current_block = await self.accessor.current_height(network)
        from_block = max(0, current_block - TRANSFER_LOOKBACK_BLOCKS)
        events = await self.accessor.transfer_events(
            network, token_address, ERC20_ABI, from_block, current_block
        )

        latest = events[-limit:]
        block_numbers = sorted({event.block_number for event in latest})
        blocks = await asyncio.gather(
            *(self.accessor.block(network, number) for number in block_numbers)
        )
        timestamps = {
            number: block.timestamp
            for number, block in zip(block_numbers, blocks)
            if block is not None
        }

        transfers = [
            TokenTransferResponse(
                sender=event.sender,
                to=event.recipient,
                value=str(event.amount),
                timestamp=timestamps.get(event.block_number, 0),
                tx_hash=event.transaction_hash,
            )
            for event in latest
        ]
        transfers.reverse()
        return transfers
