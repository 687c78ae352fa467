import json
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from explorer.entities import ReceiptEntity
from fakes import FakeChainAccessor, address, make_tx

HOLDER = address("aa")
OTHER = address("bb")
USDT = "0xdac17f958d2ee523a2206206994597c13d831ec7"


class TestExplorerAPI:
    """
    Endpoint tests over an in-memory chain.

    These tests verify:
    1. Responses are wrapped in the success envelope
    2. Input validation rejects malformed addresses, hashes and networks
    3. Domain and node failures map to their status codes
    """

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client: AsyncClient):
        """
        Test root endpoint returns application information.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        """
        response = await client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Chain Explorer API"
        assert data["networks"] == ["ethereum", "base", "arbitrum"]
        assert data["endpoints"]["address"] == "/api/address/{address}"

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_address_with_recent_transactions(self, client: AsyncClient, chain: FakeChainAccessor):
        """
        Test the address overview lists matches newest first.

        Parameters
        ----------
        client : AsyncClient
            Test client fixture
        chain : FakeChainAccessor
            Chain served to the app
        """
        chain.height = 100
        chain.balances[HOLDER] = 15 * 10 ** 17
        chain.nonces[HOLDER] = 3
        chain.add_block(99, [make_tx(1, HOLDER, OTHER, value=5)])
        chain.add_block(97, [make_tx(2, OTHER, HOLDER)])

        response = await client.get(f"/api/address/{HOLDER}", params={"limit": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["balance"] == str(15 * 10 ** 17)
        assert data["balance_formatted"] == "1.5"
        assert data["transaction_count"] == 3
        assert data["is_contract"] is False

        transactions = data["transactions"]
        assert [tx["block_number"] for tx in transactions] == [99, 97]
        assert transactions[0]["from"] == HOLDER
        assert transactions[0]["value"] == "5"
        assert transactions[0]["confirmations"] == 1
        assert transactions[1]["to"] == HOLDER

    @pytest.mark.asyncio
    async def test_address_scan_depth_is_bounded(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.height = 100
        chain.add_block(80, [make_tx(1, HOLDER, OTHER)])

        response = await client.get(f"/api/address/{HOLDER}", params={"max_blocks_back": 10})

        assert response.status_code == 200
        assert response.json()["data"]["transactions"] == []
        assert chain.fetched == list(range(100, 90, -1))

    @pytest.mark.asyncio
    async def test_address_zero_limit_skips_scan(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.height = 100

        response = await client.get(f"/api/address/{HOLDER}", params={"limit": 0})

        assert response.status_code == 200
        assert chain.fetched == []

    @pytest.mark.asyncio
    async def test_invalid_address_format(self, client: AsyncClient):
        response = await client.get("/api/address/invalid_address")
        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["errors"][0]["field"] == "address"

    @pytest.mark.asyncio
    async def test_unsupported_network(self, client: AsyncClient):
        response = await client.get(f"/api/address/{HOLDER}", params={"network": "bitcoin"})
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "network"

    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, client: AsyncClient):
        response = await client.get(f"/api/address/{HOLDER}", params={"limit": 101})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_node_failure_is_bad_gateway(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.fail_height = True

        response = await client.get(f"/api/address/{HOLDER}")

        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "error.rpc.failed"}

    @pytest.mark.asyncio
    async def test_scan_aborts_on_failing_block(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.height = 10
        chain.failing_blocks.add(9)

        response = await client.get(f"/api/address/{HOLDER}")

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_get_block(self, client: AsyncClient, chain: FakeChainAccessor, mock_redis: AsyncMock):
        chain.height = 10
        block = chain.add_block(7, [make_tx(1, HOLDER, OTHER), make_tx(2, OTHER, HOLDER)], base_fee=10 ** 9)

        response = await client.get("/api/block/7")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["number"] == 7
        assert data["hash"] == block.hash
        assert data["transaction_count"] == 2
        assert data["transactions"] == block.transaction_hashes
        assert data["base_fee_per_gas"] == str(10 ** 9)
        mock_redis.setex.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_latest_block_is_not_cached(self, client: AsyncClient, chain: FakeChainAccessor, mock_redis: AsyncMock):
        chain.height = 12
        chain.add_block(12)

        response = await client.get("/api/block/latest")

        assert response.status_code == 200
        assert response.json()["data"]["number"] == 12
        mock_redis.get.assert_not_awaited()
        mock_redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_block_not_found(self, client: AsyncClient):
        response = await client.get("/api/block/123456")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "error.block.not_found"}

    @pytest.mark.asyncio
    async def test_invalid_block_identifier(self, client: AsyncClient):
        response = await client.get("/api/block/pending")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_transaction(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.height = 105
        tx = chain.add_block(100, [make_tx(1, HOLDER, None)]).transactions[0]
        chain.transactions[tx.hash] = tx
        chain.receipts[tx.hash] = ReceiptEntity(transaction_hash=tx.hash, block_number=100, gas_used=53000, status=1)

        response = await client.get(f"/api/transaction/{tx.hash}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["from"] == HOLDER
        assert data["to"] is None
        assert data["gas_used"] == "53000"
        assert data["status"] == 1
        assert data["confirmations"] == 6

    @pytest.mark.asyncio
    async def test_pending_transaction_has_no_block(self, client: AsyncClient, chain: FakeChainAccessor):
        tx = make_tx(9, HOLDER, OTHER)
        chain.transactions[tx.hash] = tx

        response = await client.get(f"/api/transaction/{tx.hash}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["block_number"] is None
        assert data["block_hash"] is None
        assert data["confirmations"] == 0

    @pytest.mark.asyncio
    async def test_cached_transaction_refreshes_confirmations(
        self,
        client: AsyncClient,
        chain: FakeChainAccessor,
        mock_redis: AsyncMock
    ):
        chain.height = 150
        tx_hash = "0x" + "cd" * 32
        mock_redis.get = AsyncMock(return_value=json.dumps({
            "hash": tx_hash,
            "sender": HOLDER,
            "to": OTHER,
            "value": "1",
            "gas_price": "1000000000",
            "gas_limit": "21000",
            "gas_used": "21000",
            "nonce": 0,
            "block_number": 100,
            "block_hash": "0x" + "00" * 32,
            "timestamp": 1_700_001_200,
            "confirmations": 1,
            "input": "0x",
            "status": 1,
        }))

        response = await client.get(f"/api/transaction/{tx_hash}")

        assert response.status_code == 200
        assert response.json()["data"]["confirmations"] == 51

    @pytest.mark.asyncio
    async def test_transaction_not_found(self, client: AsyncClient):
        response = await client.get(f"/api/transaction/0x{'ee' * 32}")
        assert response.status_code == 404
        assert response.json()["error"] == "error.transaction.not_found"

    @pytest.mark.asyncio
    async def test_get_contract(self, client: AsyncClient, chain: FakeChainAccessor):
        contract = address("c0")
        chain.codes[contract] = "0x6080604052"
        chain.balances[contract] = 7

        response = await client.get(f"/api/contract/{contract}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_contract"] is True
        assert data["bytecode"] == "0x6080604052"
        assert data["balance"] == "7"
        assert data["abi"] is None

    @pytest.mark.asyncio
    async def test_read_contract(self, client: AsyncClient, chain: FakeChainAccessor):
        contract = address("c0")
        chain.calls[(contract, "symbol")] = "USDC"
        payload = {
            "abi_item": {
                "type": "function",
                "name": "symbol",
                "inputs": [],
                "outputs": [{"name": "", "type": "string"}],
                "stateMutability": "view",
            }
        }

        response = await client.post(f"/api/contract/{contract}/read", json=payload)

        assert response.status_code == 200
        assert response.json()["data"] == {"function": "symbol", "result": "USDC"}

    @pytest.mark.asyncio
    async def test_read_contract_rejects_state_changing_function(self, client: AsyncClient):
        payload = {
            "abi_item": {
                "type": "function",
                "name": "transfer",
                "inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
                "stateMutability": "nonpayable",
            }
        }

        response = await client.post(f"/api/contract/{address('c0')}/read", json=payload)

        assert response.status_code == 422
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_reverted_read_is_bad_gateway(self, client: AsyncClient):
        payload = {"abi_item": {"type": "function", "name": "paused", "stateMutability": "view"}}

        response = await client.post(f"/api/contract/{address('c0')}/read", json=payload)

        assert response.status_code == 502
        assert response.json()["error"] == "error.contract.call_failed"

    @pytest.mark.asyncio
    async def test_top_tokens(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.calls[(USDT, "name")] = "Tether USD"
        chain.calls[(USDT, "symbol")] = "USDT"
        chain.calls[(USDT, "decimals")] = 6
        chain.calls[(USDT, "totalSupply")] = 10 ** 15

        response = await client.get("/api/tokens/top")

        assert response.status_code == 200
        tokens = response.json()["data"]
        assert [t["symbol"] for t in tokens] == ["USDT"]
        assert tokens[0]["total_supply"] == str(10 ** 15)

    @pytest.mark.asyncio
    async def test_address_token_balances(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.calls[(USDT, "name")] = "Tether USD"
        chain.calls[(USDT, "symbol")] = "USDT"
        chain.calls[(USDT, "decimals")] = 6
        chain.calls[(USDT, "balanceOf", HOLDER)] = 1_250_000

        response = await client.get(f"/api/address/{HOLDER}/tokens")

        assert response.status_code == 200
        balances = response.json()["data"]
        assert len(balances) == 1
        assert balances[0]["balance_formatted"] == "1.25"

    @pytest.mark.asyncio
    async def test_nft_collection(self, client: AsyncClient, chain: FakeChainAccessor):
        collection = address("71")
        chain.calls[(collection, "name")] = "Punks"
        chain.calls[(collection, "symbol")] = "PUNK"
        chain.calls[(collection, "totalSupply")] = 10000

        response = await client.get("/api/nft/collection", params={"address": collection})

        assert response.status_code == 200
        assert response.json()["data"]["total_supply"] == 10000

    @pytest.mark.asyncio
    async def test_nft_token_requires_contract(self, client: AsyncClient):
        response = await client.get("/api/nft/token", params={"token_id": 1})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_dashboard_stats(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.height = 300
        chain.add_block(300, [make_tx(1, HOLDER, OTHER)], base_fee=12 * 10 ** 9)
        chain.add_block(200)

        response = await client.get("/api/dashboard/stats", params={"network": "base"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["block_number"] == 300
        assert data["block_time"] == 12.0
        assert data["gas_price"]["standard"] == "20"
        assert data["gas_price"]["base_fee"] == "12"

    @pytest.mark.asyncio
    async def test_gas_history(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.height = 1000
        chain.add_block(1000, base_fee=2 * 10 ** 9)
        chain.add_block(950, base_fee=3 * 10 ** 9)

        response = await client.get("/api/dashboard/gas-history", params={"hours": 1})

        assert response.status_code == 200
        assert [p["gas_price"] for p in response.json()["data"]] == [3.0, 2.0]

    @pytest.mark.asyncio
    async def test_gas_history_hours_out_of_range(self, client: AsyncClient):
        response = await client.get("/api/dashboard/gas-history", params={"hours": 500})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_tx_history(self, client: AsyncClient, chain: FakeChainAccessor):
        chain.height = 600
        chain.add_block(600, [make_tx(1, HOLDER, OTHER)])
        chain.add_block(300, [make_tx(2, HOLDER, OTHER), make_tx(3, OTHER, HOLDER)])

        response = await client.get("/api/dashboard/tx-history", params={"days": 1})

        assert response.status_code == 200
        assert [p["count"] for p in response.json()["data"]] == [2, 1]
