"""Convergence loop: plan, confirm, submit, monitor, re-plan"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from brokerage_base import BrokerClient, OrderAction, OrderRequest
from strategy_engine import AllocationTarget, StrategyEngineClient
from sync_config import AppConfig, SyncTarget
from .allocation_planner import AllocationPlanner
from .confirmation import ConfirmationProvider
from .identity_resolver import SecurityIdentityResolver
from .logger import sync_logger
from .models import AbortReason, CashLedger, LegResult, SyncOutcome, SyncState
from .monitor import OrderMonitor
from .order_sizer import OrderSizer
from .price_snapshot import PriceSnapshotProvider


class _SyncRun:
    """Components and bookkeeping for one sync invocation"""

    def __init__(self, controller: "ExecutionController", target: SyncTarget, logger):
        config = controller.config
        self.target = target
        self.logger = logger
        self.resolver = SecurityIdentityResolver(controller.engine, config.planning, logger)
        self.pricing = PriceSnapshotProvider(controller.broker, self.resolver, logger)
        self.planner = AllocationPlanner(controller.engine, self.resolver, target.portfolio_id,
                                         config.planning, logger)
        self.sizer = OrderSizer(target.account_id, logger)
        self.monitor = OrderMonitor(controller.broker, config.execution, logger)
        self.history: List[SyncState] = []

    def transition(self, state: SyncState):
        self.history.append(state)
        self.logger.debug(f"Sync state -> {state.value}")


class ExecutionController:
    """
    Drives a brokerage account toward the strategy's target allocation.

    Each iteration re-reads positions and cash from the broker, prices the
    universe, asks the engine for a plan and submits it as one order group.
    Unfilled remainders trigger a fresh plan at fresh prices until every leg
    fills or the iteration/time budget runs out.
    """

    def __init__(self, broker: BrokerClient, engine: StrategyEngineClient, config: AppConfig,
                 confirmation: ConfirmationProvider, logger: Optional[logging.Logger] = None):
        self.broker = broker
        self.engine = engine
        self.config = config
        self.confirmation = confirmation
        self.logger = logger

    def _run(self, target: SyncTarget) -> _SyncRun:
        logger = self.logger or sync_logger(target.account_id, target.portfolio_id)
        return _SyncRun(self, target, logger)

    async def sync(self, target: SyncTarget) -> SyncOutcome:
        run = self._run(target)
        log = run.logger
        execution = self.config.execution
        loop = asyncio.get_running_loop()
        started = loop.time()

        log.info(f"Starting sync of account {target.account_id} to portfolio {target.portfolio_id}")

        run.transition(SyncState.PLANNING)
        allocation = await run.planner.plan_allocation_only()

        iteration = 0
        legs: List[LegResult] = []
        while True:
            iteration += 1
            log.info(f"====== ITERATION {iteration}/{execution.max_iterations} ======")

            orders, ledger = await self._plan_orders(run, allocation)
            if not orders:
                log.info("No trades required - portfolio is already balanced")
                run.transition(SyncState.CONVERGED)
                return self._outcome(run, SyncState.CONVERGED, iteration, legs)

            run.transition(SyncState.AWAITING_CONFIRMATION)
            if not await self.confirmation.confirm(orders, ledger):
                log.warning("User did not confirm transactions; no orders submitted")
                run.transition(SyncState.ABORTED)
                return self._outcome(run, SyncState.ABORTED, iteration, legs,
                                     abort_reason=AbortReason.NOT_CONFIRMED)

            run.transition(SyncState.SUBMITTING)
            submitted = await self.broker.submit_order_group(target.account_id, orders)
            log.info(f"Submitted order group of {len(submitted)} orders")

            run.transition(SyncState.MONITORING)
            iteration_legs = await run.monitor.wait_for_settlement(target.account_id, orders, submitted)
            legs.extend(iteration_legs)
            remainders = _remainders(iteration_legs)
            self._log_fills(log, iteration_legs)

            if not remainders:
                log.info(f"All orders filled after {iteration} iteration(s)")
                run.transition(SyncState.CONVERGED)
                return self._outcome(run, SyncState.CONVERGED, iteration, legs)

            elapsed = loop.time() - started
            if iteration >= execution.max_iterations or elapsed >= execution.max_sync_duration_seconds:
                log.error(
                    f"Sync did not converge after {iteration} iteration(s) and {elapsed:.0f}s; "
                    f"unfilled: {', '.join(f'{s} x{q}' for s, q in sorted(remainders.items()))}"
                )
                run.transition(SyncState.ABORTED)
                return self._outcome(run, SyncState.ABORTED, iteration, legs,
                                     abort_reason=AbortReason.DID_NOT_CONVERGE, remainders=remainders)

            log.info(f"{len(remainders)} legs partially filled, re-planning against fresh prices")
            run.transition(SyncState.PARTIAL_REPLAN)
            run.transition(SyncState.PLANNING)

    async def preview(self, target: SyncTarget) -> Tuple[List[OrderRequest], CashLedger]:
        """Single planning pass without confirmation or submission"""
        run = self._run(target)
        run.logger.info(f"Calculating rebalance for account {target.account_id}")
        allocation = await run.planner.plan_allocation_only()
        return await self._plan_orders(run, allocation, is_preview=True)

    async def _plan_orders(self, run: _SyncRun, allocation: AllocationTarget,
                           is_preview: bool = False) -> Tuple[List[OrderRequest], CashLedger]:
        account_id = run.target.account_id
        broker_positions, cash_balance = await asyncio.gather(
            self.broker.list_positions(account_id),
            self.broker.get_cash_balance(account_id)
        )
        positions = await run.resolver.resolve_positions(broker_positions)
        self._log_account_snapshot(run.logger, broker_positions, cash_balance)

        universe = set(allocation.members) | {pos.security_identifier for pos in positions}
        snapshot = await run.pricing.get_snapshot(universe)
        transactions = await run.planner.plan_rebalance(positions, snapshot, cash_balance)

        ledger = CashLedger(cash_balance)
        orders = run.sizer.build_orders(transactions, ledger)

        dropped = [order for order in orders if order.quantity == 0]
        for order in dropped:
            run.logger.info(f"Dropping {order.action.value} {order.symbol}: less than one whole share")
        orders = [order for order in orders if order.quantity > 0]

        self._log_planned_orders(run.logger, orders, ledger, is_preview)
        return orders, ledger

    def _outcome(self, run: _SyncRun, state: SyncState, iteration: int, legs: List[LegResult],
                 abort_reason: Optional[AbortReason] = None,
                 remainders: Optional[Dict[str, int]] = None) -> SyncOutcome:
        last_plan = run.planner.last_plan
        return SyncOutcome(
            account_id=run.target.account_id,
            portfolio_id=run.target.portfolio_id,
            final_state=state,
            abort_reason=abort_reason,
            iterations=iteration,
            state_history=list(run.history),
            legs=legs,
            remainders=remainders or {},
            next_trade_date=last_plan.next_trade_date if last_plan else None
        )

    def _log_account_snapshot(self, log, positions, cash_balance: float):
        log.info("====== ACCOUNT SNAPSHOT ======")
        if positions:
            log.info(f"Positions ({len(positions)}):")
            for pos in sorted(positions, key=lambda x: x.symbol):
                log.info(f"  {pos.symbol}: {pos.quantity:,} shares = ${pos.market_value:,.2f}")
        else:
            log.info("No positions held")
        log.info(f"Cash Balance: ${cash_balance:,.2f}")
        log.info("=" * 30)

    def _log_planned_orders(self, log, orders: List[OrderRequest], ledger: CashLedger, is_preview: bool):
        stage = "PROPOSED ORDERS (PREVIEW)" if is_preview else "PLANNED ORDERS"
        log.info(f"====== {stage} ======")

        sell_orders = [o for o in orders if o.action == OrderAction.SELL]
        buy_orders = [o for o in orders if o.action == OrderAction.BUY]
        log.info(f"Total Orders: {len(orders)} ({len(sell_orders)} sells, {len(buy_orders)} buys)")
        log.info(f"Total Sell Value: ${sum(o.notional for o in sell_orders):,.2f}")
        log.info(f"Total Buy Value: ${sum(o.notional for o in buy_orders):,.2f}")

        for order in sell_orders + buy_orders:
            log.info(f"  {order.action.value} {order.quantity:,} shares of {order.symbol} "
                     f"@ ${order.limit_price:.2f} = ${order.notional:,.2f}")

        log.info(f"Cash Left: ${ledger.balance:,.2f}")
        log.info("=" * (len(stage) + 14))

    def _log_fills(self, log, legs: List[LegResult]):
        log.info("====== FILL SUMMARY ======")
        for leg in legs:
            log.info(f"  {leg.order_id} {leg.action.value} {leg.symbol}: {leg.quantity_filled}/"
                     f"{leg.quantity_requested} filled ({leg.status})")
        log.info("=" * 26)


def _remainders(legs: List[LegResult]) -> Dict[str, int]:
    remainders: Dict[str, int] = {}
    for leg in legs:
        if leg.remainder > 0:
            remainders[leg.symbol] = remainders.get(leg.symbol, 0) + leg.remainder
    return remainders
