import asyncio
import logging
import time

from core.exceptions import TransientFetchException
from explorer.accessor import ChainDataAccessor
from explorer.formatting import wei_to_gwei
from explorer.schemas import (
    GasPricePoint,
    GasPriceResponse,
    NetworkStatsResponse,
    TxVolumePoint,
)

BLOCK_TIME_WINDOW = 100
DEFAULT_BLOCK_TIME = 12.0
BLOCKS_PER_HOUR = 3600 // 12
ACTIVE_ADDRESS_RATIO = 0.6


def _gwei(wei: int) -> str:
    return f"{wei_to_gwei(wei):.9f}".rstrip("0").rstrip(".")


class AnalyticsService:
    """
    Dashboard figures and chart series derived from recent blocks.

    Parameters
    ----------
    accessor : ChainDataAccessor
        Chain data accessor
    logger : logging.Logger
        Logger instance
    throttle_seconds : float
        Pause inserted every 10 samples of the volume history
    """

    def __init__(self, accessor: ChainDataAccessor, logger: logging.Logger, throttle_seconds: float = 1.0):
        self.accessor = accessor
        self.logger = logger
        self.throttle_seconds = throttle_seconds

    async def get_network_stats(self, network: str) -> NetworkStatsResponse:
        """
        Current height, block time, gas tiers and throughput estimates.

        Parameters
        ----------
        network : str
            Network name

        Returns
        -------
        NetworkStatsResponse
            Network statistics
        """
        block_number, gas_price, latest = await asyncio.gather(
            self.accessor.current_height(network),
            self.accessor.gas_price(network),
            self.accessor.block(network, "latest"),
        )

        previous = None
        if block_number >= BLOCK_TIME_WINDOW:
            previous = await self.accessor.block(network, block_number - BLOCK_TIME_WINDOW)

        block_time = DEFAULT_BLOCK_TIME
        if latest is not None and previous is not None and latest.timestamp > previous.timestamp:
            block_time = (latest.timestamp - previous.timestamp) / BLOCK_TIME_WINDOW

        tps = latest.transaction_count / block_time if latest is not None else 0.0
        transactions_24h = int(tps * 86400)

        base_fee = None
        if latest is not None and latest.base_fee_per_gas is not None:
            base_fee = _gwei(latest.base_fee_per_gas)

        return NetworkStatsResponse(
            block_number=block_number,
            block_time=block_time,
            gas_price=GasPriceResponse(
                slow=_gwei(gas_price * 80 // 100),
                standard=_gwei(gas_price),
                fast=_gwei(gas_price * 120 // 100),
                instant=_gwei(gas_price * 150 // 100),
                base_fee=base_fee,
                timestamp=int(time.time() * 1000),
            ),
            tps=tps,
            active_addresses_24h=int(transactions_24h * ACTIVE_ADDRESS_RATIO),
            transactions_24h=transactions_24h,
            volume_24h="0",
        )

    async def get_gas_price_history(self, network: str, hours: int = 24) -> list[GasPricePoint]:
        """
        Sample the base fee across the last ``hours`` hours.

        Up to 100 blocks are sampled at a fixed interval; blocks without
        a base fee or that fail to load are left out.

        Returns
        -------
        list[GasPricePoint]
            Points oldest first, timestamps in milliseconds
        """
        current_block = await self.accessor.current_height(network)
        samples = min(hours * 6, 100)
        interval = max(1, (hours * 300) // samples)

        history = []
        for i in range(samples):
            number = current_block - i * interval
            if number < 0:
                break
            try:
                block = await self.accessor.block(network, number)
            except TransientFetchException as e:
                self.logger.warning(f"Error fetching block {number} on {network}: {e}")
                continue
            if block is not None and block.base_fee_per_gas is not None:
                history.append(GasPricePoint(
                    timestamp=block.timestamp * 1000,
                    gas_price=wei_to_gwei(block.base_fee_per_gas),
                ))

        history.reverse()
        return history

    async def get_transaction_volume_history(self, network: str, days: int = 7) -> list[TxVolumePoint]:
        """
        Sample the transaction count of one block per hour.

        Returns
        -------
        list[TxVolumePoint]
            Points oldest first, timestamps in milliseconds
        """
        current_block = await self.accessor.current_height(network)
        total_samples = days * 24

        history = []
        for i in range(total_samples):
            number = current_block - i * BLOCKS_PER_HOUR
            if number < 0:
                break
            try:
                block = await self.accessor.block(network, number)
            except TransientFetchException as e:
                self.logger.warning(f"Error fetching block {number} on {network}: {e}")
                block = None
            if block is not None:
                history.append(TxVolumePoint(
                    timestamp=block.timestamp * 1000,
                    count=block.transaction_count,
                ))

            if i > 0 and i % 10 == 0 and self.throttle_seconds:
                await asyncio.sleep(self.throttle_seconds)

        history.reverse()
        return history
