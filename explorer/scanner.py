import logging
import time

from core.exceptions import BadRequestException
from explorer.accessor import ChainDataAccessor
from explorer.entities import TransactionEntity

DEFAULT_MAX_BLOCKS_BACK = 1000


class RecentTransactionScanner:
    """
    Finds the most recent transactions of an address by walking blocks
    backward from the chain head.

    The walk is a stand-in for an address index: it visits at most
    ``max_blocks_back`` blocks, one fetch at a time, and stops as soon as
    enough matches are collected.

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

    async def find_recent_transactions(
        self,
        address: str,
        network: str,
        limit: int,
        max_blocks_back: int = DEFAULT_MAX_BLOCKS_BACK,
        deadline: float | None = None
    ) -> list[TransactionEntity]:
        """
        Collect up to ``limit`` transactions sent from or to ``address``.

        The head is read once; blocks ``head`` down to ``floor + 1`` are
        visited in descending order, where ``floor = max(0, head -
        max_blocks_back)``. Blocks the node does not have are skipped.
        Any fetch error aborts the scan.

        Parameters
        ----------
        address : str
            Address matched against sender and recipient, ignoring case
        network : str
            Network id
        limit : int
            Maximum number of transactions to return
        max_blocks_back : int
            Number of blocks below the head the scan may visit
        deadline : float | None
            Seconds after which the scan returns what it has collected;
            checked between block fetches only

        Returns
        -------
        list[TransactionEntity]
            Matches, newest block first, block order within a block

        Raises
        ------
        BadRequestException
            If ``limit`` or ``max_blocks_back`` is negative
        """
        if limit < 0:
            raise BadRequestException("error.scan.invalid_limit")
        if max_blocks_back < 0:
            raise BadRequestException("error.scan.invalid_depth")
        if limit == 0:
            return []

        started = time.monotonic()
        height = await self.accessor.current_height(network)
        floor = max(0, height - max_blocks_back)
        self.logger.info(
            f"Scanning {network} blocks {height}..{floor + 1} for {address} (limit {limit})"
        )

        matches: list[TransactionEntity] = []
        visited = 0
        for number in range(height, floor, -1):
            if deadline is not None and time.monotonic() - started >= deadline:
                self.logger.warning(
                    f"Scan for {address} on {network} hit the {deadline}s deadline "
                    f"after {visited} blocks, returning {len(matches)} transactions"
                )
                break

            block = await self.accessor.block_with_transactions(network, number)
            visited += 1
            if block is None:
                self.logger.debug(f"Block {number} on {network} is not available, skipping")
                continue

            for tx in block.transactions:
                if not tx.involves(address):
                    continue
                matches.append(tx.model_copy(update={
                    "block_number": block.number,
                    "block_hash": block.hash,
                    "timestamp": block.timestamp,
                    "confirmations": height - block.number,
                }))
                if len(matches) >= limit:
                    break

            if len(matches) >= limit:
                break

        self.logger.info(
            f"Scan for {address} on {network} visited {visited} blocks, found {len(matches)} transactions"
        )
        return matches
