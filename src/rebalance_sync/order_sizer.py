import logging
import math
from typing import List, Optional

from brokerage_base import OrderAction, OrderRequest, OrderType, TimeInForce
from strategy_engine import Transaction
from .models import CashLedger


class OrderSizer:
    """Turns planned transactions into whole-share DAY limit orders"""

    def __init__(self, account_id: str, logger: Optional[logging.Logger] = None):
        self.account_id = account_id
        self.logger = logger or logging.getLogger(__name__)

    def build_orders(self, transactions: List[Transaction], ledger: CashLedger) -> List[OrderRequest]:
        """One order per transaction; the ledger is updated for display and never gates an order"""
        orders = []
        for trx in transactions:
            action = OrderAction.BUY if trx.kind == "BUY" else OrderAction.SELL
            quantity = math.floor(abs(trx.shares))
            limit_price = round(trx.reference_price, 2)

            order = OrderRequest(
                account_id=self.account_id,
                symbol=trx.broker_symbol,
                action=action,
                order_type=OrderType.LIMIT,
                quantity=quantity,
                limit_price=limit_price,
                time_in_force=TimeInForce.DAY
            )
            ledger.record(action, order.notional)
            orders.append(order)

            if quantity != abs(trx.shares):
                self.logger.debug(f"Truncated {trx.shares} shares of {order.symbol} to {quantity}")

        return orders
