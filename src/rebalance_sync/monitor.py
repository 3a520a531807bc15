import asyncio
import logging
from typing import Dict, List, Optional

from brokerage_base import BrokerClient, OrderExecutionRecord, OrderRequest, OrderStatus
from sync_config import ExecutionConfig
from .models import LegResult


class OrderMonitor:
    """Wait-then-poll observation of a submitted order group"""

    def __init__(self, broker: BrokerClient, execution_config: ExecutionConfig,
                 logger: Optional[logging.Logger] = None):
        self.broker = broker
        self.config = execution_config
        self.logger = logger or logging.getLogger(__name__)

    async def wait_for_settlement(self, account_id: str, orders: List[OrderRequest],
                                  submitted: List[OrderExecutionRecord]) -> List[LegResult]:
        """
        Poll until every submitted order is terminal or the monitoring timeout passes.

        Returns one LegResult per submitted order with the last observed fill.
        An order the broker never reports again is treated as unfilled.
        """
        if not submitted:
            return []

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.monitoring_timeout_seconds
        order_ids = [record.order_id for record in submitted]
        latest: Dict[str, OrderExecutionRecord] = {record.order_id: record for record in submitted}

        self.logger.info(
            f"Waiting {self.config.initial_wait_seconds}s before checking {len(order_ids)} orders"
        )
        await asyncio.sleep(self.config.initial_wait_seconds)

        while True:
            records = await self.broker.get_order_status(account_id)
            for record in records:
                if record.order_id in latest:
                    latest[record.order_id] = record

            pending = [oid for oid in order_ids if not latest[oid].is_terminal]
            for oid in order_ids:
                record = latest[oid]
                self.logger.debug(f"Order {oid} status: '{record.status}' ({record.status_description})")

            if not pending:
                self.logger.info("All orders reached a terminal state")
                break

            remaining_time = deadline - loop.time()
            if remaining_time <= 0:
                self.logger.warning(
                    f"Monitoring timed out after {self.config.monitoring_timeout_seconds}s "
                    f"with {len(pending)} orders pending: {', '.join(pending)}"
                )
                break

            self.logger.info(f"{len(pending)} orders pending, checking again in {self.config.poll_interval_seconds}s")
            await asyncio.sleep(min(self.config.poll_interval_seconds, remaining_time))

        return [
            _leg_result(order, latest[record.order_id])
            for order, record in zip(orders, submitted)
        ]


def _leg_result(order: OrderRequest, record: OrderExecutionRecord) -> LegResult:
    leg = next((item for item in record.legs if item.symbol == order.symbol), None)
    if leg is None and record.legs:
        leg = record.legs[0]

    filled = leg.quantity_filled if leg is not None else 0
    if record.status == OrderStatus.FILLED and filled == 0 and (leg is None or leg.quantity_remaining == 0):
        filled = order.quantity

    return LegResult(
        order_id=record.order_id,
        symbol=order.symbol,
        action=order.action,
        quantity_requested=order.quantity,
        quantity_filled=min(filled, order.quantity),
        status=record.status,
        limit_price=order.limit_price
    )
