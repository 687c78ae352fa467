import os
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NativeCurrency(BaseModel):
    name: str = "Ether"
    symbol: str = "ETH"
    decimals: int = 18


class NetworkConfig(BaseModel):
    """
    Static description of a supported EVM network.

    Attributes
    ----------
    id : str
        Network identifier used in requests
    name : str
        Human readable network name
    rpc_url : str
        JSON-RPC endpoint
    explorer : str
        Block explorer web URL
    explorer_api_url : str
        Etherscan-compatible API endpoint used for ABI lookups
    chain_id : int
        EIP-155 chain id
    native_currency : NativeCurrency
        Native coin description
    popular_tokens : list[str]
        ERC-20 contracts listed as top tokens
    """
    id: str
    name: str
    rpc_url: str
    explorer: str
    explorer_api_url: str
    chain_id: int
    native_currency: NativeCurrency = Field(default_factory=NativeCurrency)
    popular_tokens: list[str] = Field(default_factory=list)


def default_networks() -> dict[str, NetworkConfig]:
    return {
        "ethereum": NetworkConfig(
            id="ethereum",
            name="Ethereum Mainnet",
            rpc_url=os.getenv("ETHEREUM_RPC_URL", "https://eth.llamarpc.com"),
            explorer="https://etherscan.io",
            explorer_api_url="https://api.etherscan.io/api",
            chain_id=1,
            popular_tokens=[
                "0xdac17f958d2ee523a2206206994597c13d831ec7",  # USDT
                "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",  # USDC
                "0x6b175474e89094c44da98b954eedeac495271d0f",  # DAI
                "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",  # WBTC
                "0x514910771af9ca656af840dff83e8264ecf986ca",  # LINK
            ],
        ),
        "base": NetworkConfig(
            id="base",
            name="Base",
            rpc_url=os.getenv("BASE_RPC_URL", "https://mainnet.base.org"),
            explorer="https://basescan.org",
            explorer_api_url="https://api.basescan.org/api",
            chain_id=8453,
            popular_tokens=[
                "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",  # USDC
            ],
        ),
        "arbitrum": NetworkConfig(
            id="arbitrum",
            name="Arbitrum One",
            rpc_url=os.getenv("ARBITRUM_RPC_URL", "https://arb1.arbitrum.io/rpc"),
            explorer="https://arbiscan.io",
            explorer_api_url="https://api.arbiscan.io/api",
            chain_id=42161,
            popular_tokens=[
                "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",  # USDT
                "0xff970a61a04b1ca14834a43f5de4533ebddb5cc8",  # USDC.e
            ],
        ),
    }


class Settings(BaseSettings):
    """
    Application settings using Pydantic Settings.

    Attributes
    ----------
    networks : dict[str, NetworkConfig]
        Supported networks keyed by id
    redis_host : str
        Redis host for caching
    redis_port : int
        Redis port
    redis_db : int
        Redis database number
    redis_password : str
        Redis password (optional)
    etherscan_api_key : str
        API key for Etherscan-family explorers (optional)
    rpc_timeout_seconds : float
        Per-request JSON-RPC timeout
    scan_max_blocks_back : int
        Depth bound of the recent transaction scan
    scan_default_limit : int
        Number of recent transactions shown for an address
    scan_deadline_seconds : float | None
        Wall time after which an address scan returns what it has
    ipfs_gateway : str
        HTTP gateway used to resolve ipfs:// URIs
    history_throttle_seconds : float
        Pause every 10 blocks while sampling transaction volume
    """

    networks: dict[str, NetworkConfig] = Field(default_factory=default_networks)

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str = ""

    etherscan_api_key: str = ""

    rpc_timeout_seconds: float = 30.0
    scan_max_blocks_back: int = 1000
    scan_default_limit: int = 20
    scan_deadline_seconds: float | None = None

    ipfs_gateway: str = "https://ipfs.io/ipfs/"
    history_throttle_seconds: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_network(self, network: str) -> NetworkConfig | None:
        """
        Get configuration of a network.

        Parameters
        ----------
        network : str
            Network id (ethereum, base, arbitrum)

        Returns
        -------
        NetworkConfig | None
            Network configuration or None if the network is not configured
        """
        return self.networks.get(network)
