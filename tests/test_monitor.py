import pytest

from brokerage_base import OrderAction, OrderExecutionRecord, OrderLeg, OrderRequest, OrderStatus
from rebalance_sync import OrderMonitor
from sync_config import ExecutionConfig
from tradestation_connector import normalize_status

from conftest import FakeBrokerage

ORDER = OrderRequest(account_id="SIM1", symbol="MSFT", action=OrderAction.BUY, quantity=100, limit_price=10.0)
RECEIVED = OrderExecutionRecord(order_id="1", status=OrderStatus.RECEIVED)


class ScriptedStatusBroker(FakeBrokerage):
    def __init__(self, snapshots):
        super().__init__()
        self.snapshots = list(snapshots)

    async def get_order_status(self, account_id):
        self.status_polls += 1
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0]


def record(status, filled):
    return OrderExecutionRecord(order_id="1", status=status, legs=[OrderLeg(
        symbol="MSFT", action="BUY", quantity_requested=100,
        quantity_filled=filled, quantity_remaining=100 - filled
    )])


class TestOrderMonitor:

    @pytest.mark.asyncio
    async def test_polls_until_terminal(self):
        broker = ScriptedStatusBroker([
            [record(OrderStatus.OPEN, 0)],
            [record(OrderStatus.PARTIALLY_FILLED, 40)],
            [record(OrderStatus.FILLED, 100)],
        ])
        config = ExecutionConfig(initial_wait_seconds=0, poll_interval_seconds=0, monitoring_timeout_seconds=60)

        legs = await OrderMonitor(broker, config).wait_for_settlement("SIM1", [ORDER], [RECEIVED])

        assert broker.status_polls == 3
        assert legs[0].quantity_filled == 100
        assert legs[0].remainder == 0

    @pytest.mark.asyncio
    async def test_timeout_keeps_last_observed_fill(self):
        broker = ScriptedStatusBroker([[record(OrderStatus.PARTIALLY_FILLED, 60)]])
        config = ExecutionConfig(initial_wait_seconds=0, poll_interval_seconds=0, monitoring_timeout_seconds=0)

        legs = await OrderMonitor(broker, config).wait_for_settlement("SIM1", [ORDER], [RECEIVED])

        assert broker.status_polls == 1
        assert legs[0].status == OrderStatus.PARTIALLY_FILLED
        assert legs[0].remainder == 40

    @pytest.mark.asyncio
    async def test_partial_fill_with_cancelled_remainder_is_final(self):
        broker = ScriptedStatusBroker([
            [record(normalize_status("FLP"), 60)],
            [record(OrderStatus.FILLED, 100)],
        ])
        config = ExecutionConfig(initial_wait_seconds=0, poll_interval_seconds=0, monitoring_timeout_seconds=60)

        legs = await OrderMonitor(broker, config).wait_for_settlement("SIM1", [ORDER], [RECEIVED])

        assert broker.status_polls == 1
        assert legs[0].quantity_filled == 60
        assert legs[0].remainder == 40

    @pytest.mark.asyncio
    async def test_order_missing_from_status_counts_as_unfilled(self):
        broker = ScriptedStatusBroker([[]])
        config = ExecutionConfig(initial_wait_seconds=0, poll_interval_seconds=0, monitoring_timeout_seconds=0)

        legs = await OrderMonitor(broker, config).wait_for_settlement("SIM1", [ORDER], [RECEIVED])

        assert legs[0].quantity_filled == 0
        assert legs[0].remainder == 100

    @pytest.mark.asyncio
    async def test_nothing_submitted_means_nothing_to_watch(self):
        broker = ScriptedStatusBroker([[]])
        legs = await OrderMonitor(broker, ExecutionConfig()).wait_for_settlement("SIM1", [], [])
        assert legs == []
        assert broker.status_polls == 0
