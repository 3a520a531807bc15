"""Request construction and response validation for strategy engine plans"""

import logging
from typing import List, Optional

from strategy_engine import (
    AllocationTarget,
    Position,
    RebalancePlan,
    StrategyEngineClient,
    StrategyEngineError,
    Transaction,
)
from sync_config import PlanningConfig
from .exceptions import PlanRequestError, ResolutionError
from .identity_resolver import SecurityIdentityResolver
from .models import PriceSnapshot

KNOWN_KINDS = ("BUY", "SELL")


class AllocationPlanner:
    def __init__(self, engine: StrategyEngineClient, resolver: SecurityIdentityResolver,
                 portfolio_id: str, planning_config: PlanningConfig,
                 logger: Optional[logging.Logger] = None):
        self.engine = engine
        self.resolver = resolver
        self.portfolio_id = portfolio_id
        self.config = planning_config
        self.logger = logger or logging.getLogger(__name__)
        self.last_plan: Optional[RebalancePlan] = None

    async def _request_plan(self, allocation_only: bool, positions: List[Position],
                            prices: dict) -> RebalancePlan:
        try:
            return await self.engine.rebalance(self.portfolio_id, allocation_only, positions, prices)
        except StrategyEngineError as e:
            self.logger.error(f"Plan request failed for portfolio {self.portfolio_id}: {e}")
            raise PlanRequestError(
                f"Strategy engine could not produce a plan: {e.message}",
                operation='rebalance'
            ) from e

    async def plan_allocation_only(self) -> AllocationTarget:
        """Discover the target security universe; runs before any pricing"""
        plan = await self._request_plan(True, [], {})
        target = plan.allocation

        total = 0.0
        for identifier, weight in target.members.items():
            if weight < 0 or weight > 1:
                raise PlanRequestError(
                    f"Target weight {weight} is outside 0..1",
                    security=identifier,
                    operation='plan_allocation_only'
                )
            total += weight

        if total > 1.0 + self.config.allocation_weight_tolerance:
            raise PlanRequestError(
                f"Target weights sum to {total:.4f}, more than 1.0",
                operation='plan_allocation_only'
            )

        self._log_target_allocation(target, total)
        return target

    async def plan_rebalance(self, positions: List[Position], snapshot: PriceSnapshot,
                             cash_balance: float) -> List[Transaction]:
        """
        Get the transactions that move positions to the target allocation.

        Cash rides along as the synthetic $CASH position. Every returned
        transaction carries a broker symbol and a reference price; a
        transaction on a security the snapshot did not price fails the plan.
        """
        request_positions = [pos for pos in positions if not pos.is_cash]
        request_positions.append(Position.cash(cash_balance))

        plan = await self._request_plan(False, request_positions, dict(snapshot.prices))
        self.last_plan = plan

        transactions = []
        for trx in plan.transactions:
            if trx.kind not in KNOWN_KINDS:
                if self.config.reject_unknown_transaction_kinds:
                    raise PlanRequestError(
                        f"Unknown transaction kind '{trx.kind}'",
                        security=trx.security_identifier,
                        operation='plan_rebalance'
                    )
                self.logger.warning(
                    f"Skipping transaction for {trx.ticker or trx.security_identifier} "
                    f"due to unknown transaction kind '{trx.kind}'"
                )
                continue

            snapshot_price = snapshot.price_of(trx.security_identifier)
            if snapshot_price is None:
                raise ResolutionError(
                    "Plan references a security without a snapshot price",
                    security=trx.security_identifier,
                    operation='plan_rebalance'
                )

            if trx.ticker:
                trx.broker_symbol = self.resolver.broker_symbol_for_ticker(trx.ticker)
            else:
                trx.broker_symbol = await self.resolver.to_broker_symbol(trx.security_identifier)
            trx.reference_price = trx.price_per_share if trx.price_per_share > 0 else snapshot_price
            transactions.append(trx)

        self.logger.info(
            f"Got transaction plan with {len(transactions)} transactions "
            f"(next trade date: {plan.next_trade_date or 'unknown'})"
        )
        return transactions

    def _log_target_allocation(self, target: AllocationTarget, total: float):
        self.logger.info(f"====== TARGET ALLOCATIONS ({len(target.members)}) ======")
        for identifier in sorted(target.members):
            self.logger.info(f"  {identifier}: {target.members[identifier] * 100:.2f}%")
        self.logger.info(f"Total Allocation: {total * 100:.2f}%")
        self.logger.info("=" * 35)
