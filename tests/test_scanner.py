import pytest

from core.exceptions import BadRequestException, TransientFetchException
from explorer.scanner import RecentTransactionScanner
from fakes import NETWORK, FakeChainAccessor, address, make_tx

TARGET = address("aa")
OTHER = address("bb")
THIRD = address("cc")


@pytest.fixture
def scanner(chain, logger) -> RecentTransactionScanner:
    return RecentTransactionScanner(accessor=chain, logger=logger)


class TestRecentTransactionScanner:
    """
    Unit tests for the backward block scan.

    The chain is an in-memory fake: blocks that were never added are
    absent, and every block fetch is recorded.
    """

    @pytest.mark.asyncio
    async def test_zero_limit_fetches_nothing(self, chain: FakeChainAccessor, scanner):
        chain.height = 100
        chain.add_block(100, [make_tx(1, TARGET, OTHER)])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=0)

        assert result == []
        assert chain.fetched == []
        assert chain.height_calls == 0

    @pytest.mark.asyncio
    async def test_negative_limit_is_rejected(self, scanner):
        with pytest.raises(BadRequestException):
            await scanner.find_recent_transactions(TARGET, NETWORK, limit=-1)

    @pytest.mark.asyncio
    async def test_negative_depth_is_rejected(self, scanner):
        with pytest.raises(BadRequestException):
            await scanner.find_recent_transactions(TARGET, NETWORK, limit=1, max_blocks_back=-5)

    @pytest.mark.asyncio
    async def test_single_match_below_empty_blocks(self, chain: FakeChainAccessor, scanner):
        """Blocks 100..95 hold no match, block 94 holds one sent by the target."""
        chain.height = 100
        for number in range(95, 101):
            chain.add_block(number, [make_tx(number, OTHER, THIRD)])
        match = make_tx(94, TARGET, OTHER)
        chain.add_block(94, [match])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=1)

        assert chain.fetched == [100, 99, 98, 97, 96, 95, 94]
        assert [tx.hash for tx in result] == [match.hash]
        assert result[0].block_number == 94

    @pytest.mark.asyncio
    async def test_unmet_quota_walks_down_to_floor(self, chain: FakeChainAccessor, scanner):
        chain.height = 100
        chain.add_block(94, [make_tx(94, TARGET, OTHER)])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=5, max_blocks_back=1000)

        assert len(result) == 1
        assert chain.fetched[:7] == [100, 99, 98, 97, 96, 95, 94]
        assert chain.fetched == list(range(100, 0, -1))

    @pytest.mark.asyncio
    async def test_floor_is_clamped_to_zero(self, chain: FakeChainAccessor, scanner):
        chain.height = 50

        await scanner.find_recent_transactions(TARGET, NETWORK, limit=3, max_blocks_back=1000)

        assert chain.fetched == list(range(50, 0, -1))
        assert 0 not in chain.fetched

    @pytest.mark.asyncio
    async def test_depth_bound_limits_the_walk(self, chain: FakeChainAccessor, scanner):
        chain.height = 100
        chain.add_block(90, [make_tx(90, TARGET, OTHER)])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=3, max_blocks_back=10)

        assert chain.fetched == list(range(100, 90, -1))
        assert result == []

    @pytest.mark.asyncio
    async def test_stops_once_quota_is_met(self, chain: FakeChainAccessor, scanner):
        chain.height = 100
        for number in (90, 85, 80, 70):
            chain.add_block(number, [make_tx(number, TARGET, OTHER)])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=3)

        assert [tx.block_number for tx in result] == [90, 85, 80]
        assert chain.fetched[-1] == 80
        assert 79 not in chain.fetched
        assert 70 not in chain.fetched

    @pytest.mark.asyncio
    async def test_quota_met_mid_block(self, chain: FakeChainAccessor, scanner):
        chain.height = 10
        txs = [make_tx(i, TARGET, OTHER) for i in range(1, 5)]
        chain.add_block(10, txs)

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=2)

        assert [tx.hash for tx in result] == [txs[0].hash, txs[1].hash]
        assert chain.fetched == [10]

    @pytest.mark.asyncio
    async def test_absent_block_is_skipped(self, chain: FakeChainAccessor, scanner):
        chain.height = 80
        for number in (80, 79, 78, 76):
            chain.add_block(number, [make_tx(number, OTHER, TARGET)])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=4)

        assert 77 in chain.fetched
        assert [tx.block_number for tx in result] == [80, 79, 78, 76]

    @pytest.mark.asyncio
    async def test_address_match_ignores_case(self, chain: FakeChainAccessor, scanner):
        chain.height = 5
        mixed = "0xAbCd" + "ab" * 18
        tx = make_tx(1, OTHER, mixed.lower())
        chain.add_block(5, [tx])

        result = await scanner.find_recent_transactions(mixed, NETWORK, limit=1)

        assert [t.hash for t in result] == [tx.hash]

    @pytest.mark.asyncio
    async def test_non_matching_transactions_are_excluded(self, chain: FakeChainAccessor, scanner):
        chain.height = 3
        sent = make_tx(1, TARGET, OTHER)
        received = make_tx(2, OTHER, TARGET)
        unrelated = make_tx(3, OTHER, THIRD)
        chain.add_block(3, [sent, unrelated, received])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=10)

        assert [t.hash for t in result] == [sent.hash, received.hash]

    @pytest.mark.asyncio
    async def test_contract_creation_matches_only_on_sender(self, chain: FakeChainAccessor, scanner):
        chain.height = 2
        created_by_target = make_tx(1, TARGET, None)
        created_by_other = make_tx(2, OTHER, None)
        chain.add_block(2, [created_by_other, created_by_target])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=10)

        assert [t.hash for t in result] == [created_by_target.hash]
        assert result[0].to is None

    @pytest.mark.asyncio
    async def test_ordering_is_newest_block_first(self, chain: FakeChainAccessor, scanner):
        chain.height = 30
        chain.add_block(30, [make_tx(301, TARGET, OTHER), make_tx(302, OTHER, TARGET)])
        chain.add_block(20, [make_tx(201, TARGET, THIRD)])
        chain.add_block(10, [make_tx(101, THIRD, TARGET), make_tx(102, TARGET, TARGET)])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=10)

        assert [t.nonce for t in result] == [301, 302, 201, 101, 102]
        numbers = [t.block_number for t in result]
        assert numbers == sorted(numbers, reverse=True)

    @pytest.mark.asyncio
    async def test_matches_carry_block_context(self, chain: FakeChainAccessor, scanner):
        chain.height = 100
        block = chain.add_block(97, [make_tx(1, TARGET, OTHER)], timestamp=1_700_000_123)

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=1)

        assert result[0].block_hash == block.hash
        assert result[0].timestamp == 1_700_000_123
        assert result[0].confirmations == 3

    @pytest.mark.asyncio
    async def test_fetch_error_aborts_the_scan(self, chain: FakeChainAccessor, scanner):
        chain.height = 10
        chain.add_block(10, [make_tx(1, TARGET, OTHER)])
        chain.failing_blocks.add(8)

        with pytest.raises(TransientFetchException):
            await scanner.find_recent_transactions(TARGET, NETWORK, limit=5)

        assert chain.fetched == [10, 9, 8]

    @pytest.mark.asyncio
    async def test_height_is_read_once(self, chain: FakeChainAccessor, scanner):
        chain.height = 20

        await scanner.find_recent_transactions(TARGET, NETWORK, limit=1)

        assert chain.height_calls == 1

    @pytest.mark.asyncio
    async def test_repeated_scans_are_identical(self, chain: FakeChainAccessor, scanner):
        chain.height = 40
        for number in (40, 33, 21, 7):
            chain.add_block(number, [make_tx(number, TARGET, OTHER), make_tx(number + 1000, OTHER, TARGET)])

        first = await scanner.find_recent_transactions(TARGET, NETWORK, limit=5)
        second = await scanner.find_recent_transactions(TARGET, NETWORK, limit=5)

        assert first == second
        assert len(first) == 5

    @pytest.mark.asyncio
    async def test_expired_deadline_returns_collected_matches(self, chain: FakeChainAccessor, scanner):
        chain.height = 10
        chain.add_block(10, [make_tx(1, TARGET, OTHER)])

        result = await scanner.find_recent_transactions(TARGET, NETWORK, limit=5, deadline=0)

        assert result == []
        assert chain.fetched == []
