import aiohttp
import asyncio
import json
import logging
from core.environment.config import Settings
from core.exceptions import BaseCustomException
from core.redis.providers import CacheService
from explorer.accessor import ChainDataAccessor

# keccak256("eip1967.proxy.implementation") - 1
IMPLEMENTATION_SLOT = "0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ABI_TTL = 86400 * 7

IMPLEMENTATION_ABI = [{
    "type": "function",
    "name": "implementation",
    "stateMutability": "view",
    "inputs": [],
    "outputs": [{"name": "", "type": "address"}],
}]


class ABIService:
    """
    Fetches verified contract ABIs from Etherscan-family explorers.

    Parameters
    ----------
    accessor : ChainDataAccessor
        Chain data accessor, used to resolve proxy implementations
    cache_service : CacheService
        Cache service for storing ABIs
    settings : Settings
        Application settings (explorer endpoints and API key)
    logger : logging.Logger
        Logger instance
    """

    def __init__(
        self,
        accessor: ChainDataAccessor,
        cache_service: CacheService,
        settings: Settings,
        logger: logging.Logger
    ):
        self.accessor = accessor
        self.cache = cache_service
        self.settings = settings
        self.logger = logger

    async def get_abi(self, contract_address: str, network: str) -> list[dict]:
        """
        Get contract ABI from cache or the explorer API.

        For proxy contracts the implementation ABI is returned.

        Parameters
        ----------
        contract_address : str
            Contract address
        network : str
            Network name

        Returns
        -------
        list[dict]
            Contract ABI, empty when the contract is not verified
        """
        cache_key = f"abi:{network}:{contract_address.lower()}"

        cached = await self.cache.get(cache_key)
        if cached and isinstance(cached, list):
            self.logger.debug(f"ABI found in cache for {contract_address}")
            return cached

        abi = await self._fetch_from_explorer(contract_address, network)

        if abi and self._is_proxy_abi(abi):
            self.logger.info(f"Contract {contract_address} detected as proxy")
            impl_address = await self._get_implementation_address(contract_address, network)

            if impl_address:
                impl_abi = await self._fetch_from_explorer(impl_address, network)
                if impl_abi:
                    self.logger.info(f"Implementation ABI of {contract_address} loaded from {impl_address}")
                    abi = impl_abi
                else:
                    self.logger.warning(f"Failed to fetch implementation ABI for {impl_address}")
            else:
                self.logger.warning(f"Failed to get implementation address for proxy {contract_address}")

        if abi:
            await self.cache.set(cache_key, abi, ttl=ABI_TTL)

        return abi

    def _is_proxy_abi(self, abi: list[dict]) -> bool:
        """
        Check if ABI looks like an upgradeable proxy.

        At least two of ``implementation``, ``upgradeTo`` and
        ``upgradeToAndCall`` must be present.
        """
        proxy_functions = ['implementation', 'upgradeTo', 'upgradeToAndCall']
        function_names = {item['name'] for item in abi if item.get('type') == 'function' and 'name' in item}
        matches = sum(1 for pf in proxy_functions if pf in function_names)
        return matches >= 2

    async def _get_implementation_address(self, proxy_address: str, network: str) -> str | None:
        """
        Resolve the implementation of a proxy.

        Tries the EIP-1967 storage slot first, then ``implementation()``.

        Returns
        -------
        str | None
            Implementation address or None
        """
        try:
            storage_value = await self.accessor.storage_at(network, proxy_address, IMPLEMENTATION_SLOT)
            impl_address = "0x" + storage_value[2:].rjust(64, "0")[-40:]
            if impl_address.lower() != ZERO_ADDRESS:
                return impl_address
        except BaseCustomException as e:
            self.logger.warning(f"Failed to read EIP-1967 slot of {proxy_address}: {e}")

        try:
            return await self.accessor.call(network, proxy_address, IMPLEMENTATION_ABI, "implementation")
        except BaseCustomException as e:
            self.logger.warning(f"Error calling implementation() on {proxy_address}: {e}")

        return None

    async def _fetch_from_explorer(self, contract_address: str, network: str) -> list[dict]:
        """
        Fetch ABI from the network's explorer API.

        Returns
        -------
        list[dict]
            Contract ABI, empty on any failure
        """
        network_config = self.settings.get_network(network)
        if network_config is None:
            return []

        params = {
            "module": "contract",
            "action": "getabi",
            "address": contract_address,
        }
        if self.settings.etherscan_api_key:
            params["apikey"] = self.settings.etherscan_api_key

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
                async with session.get(network_config.explorer_api_url, params=params) as response:
                    if response.status == 200:
                        data = await response.json(content_type=None)
                        if data.get("status") == "1" and data.get("result"):
                            return json.loads(data["result"])
                        self.logger.info(f"No verified ABI for {contract_address}: {data.get('result')}")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.warning(f"ABI fetch for {contract_address} on {network} failed: {e}")

        return []
