"""Transaction orchestrator: build, sign, submit, then refresh.

Every mutating operation walks the same state machine::

    IDLE -> BUILDING -> AWAITING_SIGNATURE -> SUBMITTED -> CONFIRMED
                 \\               \\                \\
                  +-------------- FAILED ---------+

Local state is never patched optimistically: on success the orchestrator
awaits a full cache refresh before reporting CONFIRMED.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from .amounts import parse_amount
from .config import NATIVE_COIN_TYPE, CollateralDeployment, DeploymentConfig
from .chains.sui.transactions import Argument, TransactionPlan
from .errors import PrecheckFailed
from .interfaces.chain import LedgerReader
from .interfaces.signer import Signer
from .models import CoinObject, CollateralPosition
from .parser import parse_coin, parse_position, total_balance
from .state import StateCache

logger = logging.getLogger(__name__)

# Operation records kept for status reporting; older ones are dropped.
HISTORY_LIMIT = 100


class OperationStatus(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    AWAITING_SIGNATURE = "awaiting_signature"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class OperationRecord:
    operation: str
    status: OperationStatus = OperationStatus.IDLE
    digest: str | None = None
    error: str | None = None
    plan: TransactionPlan | None = None


class TransactionOrchestrator:
    """Run mutating ALP operations against the ledger through a signer.

    Concurrent operations are not serialized here; callers that mutate the
    same position must await one operation before starting the next.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        signer: Signer | None,
        cache: StateCache,
        deployment: DeploymentConfig,
        owner: str | None,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self._ledger = ledger
        self._signer = signer
        self._cache = cache
        self._deployment = deployment
        self._owner = owner
        self.history: deque[OperationRecord] = deque(maxlen=history_limit)

    @property
    def status(self) -> OperationStatus:
        return self.history[-1].status if self.history else OperationStatus.IDLE

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _advance(self, record: OperationRecord, status: OperationStatus) -> None:
        record.status = status
        logger.info("%s: %s", record.operation, status.value)

    async def _execute(
        self,
        operation: str,
        build: Callable[[TransactionPlan], Awaitable[None]],
    ) -> OperationRecord:
        record = OperationRecord(operation)
        self.history.append(record)

        try:
            self._advance(record, OperationStatus.BUILDING)
            if not self._owner:
                raise PrecheckFailed("Wallet not connected")
            if self._signer is None:
                raise PrecheckFailed("No signer configured")

            plan = TransactionPlan()
            await build(plan)
            record.plan = plan

            self._advance(record, OperationStatus.AWAITING_SIGNATURE)
            result = await self._signer.sign_and_submit(plan)

            record.digest = result.get("digest")
            self._advance(record, OperationStatus.SUBMITTED)
        except Exception as e:
            record.error = str(e)
            self._advance(record, OperationStatus.FAILED)
            logger.error("%s failed: %s", operation, e)
            raise

        await self._cache.refresh_all(self._owner)
        self._advance(record, OperationStatus.CONFIRMED)
        return record

    # ------------------------------------------------------------------
    # Building helpers
    # ------------------------------------------------------------------

    def _units(self, text: str, allow_zero: bool = False) -> int:
        units = parse_amount(text, self._deployment.decimals)
        if units == 0 and not allow_zero:
            raise PrecheckFailed("Amount must be greater than zero")
        return units

    def _collateral(self, name: str) -> CollateralDeployment:
        try:
            return self._deployment.collateral(name)
        except ValueError as e:
            raise PrecheckFailed(str(e)) from e

    def _target(self, function: str) -> str:
        return f"{self._deployment.module_prefix}::{function}"

    async def _coins(self, coin_type: str) -> list[CoinObject]:
        raw = await self._ledger.get_coins(self._owner, coin_type)
        return [parse_coin(c, coin_type) for c in raw]

    def _cached_balance(self, coin_type: str) -> int | None:
        balances = self._cache.balances
        if balances is None:
            return None
        if coin_type == self._deployment.stable_coin_type:
            return balances.stable
        if coin_type == NATIVE_COIN_TYPE:
            return balances.native
        return None

    async def _spend(self, plan: TransactionPlan, coin_type: str, amount: int) -> Argument:
        """Produce a coin argument holding exactly ``amount`` base units.

        Native coins are split from the gas coin. Any other asset is merged
        into its first holding and the exact amount split off that; the merge
        must precede the split.
        """
        cached = self._cached_balance(coin_type)
        if cached is not None and cached < amount:
            raise PrecheckFailed(
                f"Insufficient balance: requested {amount}, available {cached}"
            )

        coins = await self._coins(coin_type)
        if not coins:
            raise PrecheckFailed(f"No spendable {coin_type} coins found")

        held = total_balance(coins)
        if held < amount:
            raise PrecheckFailed(
                f"Insufficient balance: requested {amount}, available {held}"
            )

        if coin_type == NATIVE_COIN_TYPE:
            [piece] = plan.split_coins(plan.gas, [amount])
            return piece

        primary = plan.object(coins[0].object_id)
        plan.merge_coins(primary, [plan.object(c.object_id) for c in coins[1:]])
        [piece] = plan.split_coins(primary, [amount])
        return piece

    async def _position(self, position_id: str) -> CollateralPosition:
        try:
            return parse_position(await self._ledger.get_object(position_id))
        except (KeyError, TypeError, ValueError) as e:
            raise PrecheckFailed(f"Position {position_id} not found: {e}") from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def open_position(
        self, collateral_amount: str, debt_amount: str, collateral: str = "SUI"
    ) -> OperationRecord:
        async def build(plan: TransactionPlan) -> None:
            cfg = self._collateral(collateral)
            coin = await self._spend(plan, cfg.coin_type, self._units(collateral_amount))
            plan.move_call(
                self._target("create_position"),
                [
                    plan.object(self._deployment.protocol_state_id),
                    plan.object(cfg.config_id),
                    plan.object(cfg.vault_id),
                    coin,
                    plan.pure_u64(self._units(debt_amount, allow_zero=True)),
                ],
                [cfg.coin_type],
            )

        return await self._execute("open_position", build)

    async def add_collateral(
        self, position_id: str, amount: str, collateral: str = "SUI"
    ) -> OperationRecord:
        async def build(plan: TransactionPlan) -> None:
            cfg = self._collateral(collateral)
            coin = await self._spend(plan, cfg.coin_type, self._units(amount))
            plan.move_call(
                self._target("add_collateral"),
                [
                    plan.object(self._deployment.protocol_state_id),
                    plan.object(cfg.config_id),
                    plan.object(cfg.vault_id),
                    plan.object(position_id),
                    coin,
                ],
                [cfg.coin_type],
            )

        return await self._execute("add_collateral", build)

    async def mint(
        self, position_id: str, amount: str, collateral: str = "SUI"
    ) -> OperationRecord:
        async def build(plan: TransactionPlan) -> None:
            cfg = self._collateral(collateral)
            plan.move_call(
                self._target("mint_alp"),
                [
                    plan.object(self._deployment.protocol_state_id),
                    plan.object(cfg.config_id),
                    plan.object(position_id),
                    plan.pure_u64(self._units(amount)),
                ],
            )

        return await self._execute("mint", build)

    async def burn(
        self, position_id: str, amount: str, collateral: str = "SUI"
    ) -> OperationRecord:
        async def build(plan: TransactionPlan) -> None:
            cfg = self._collateral(collateral)
            coin = await self._spend(
                plan, self._deployment.stable_coin_type, self._units(amount)
            )
            plan.move_call(
                self._target("burn_alp"),
                [
                    plan.object(self._deployment.protocol_state_id),
                    plan.object(cfg.config_id),
                    plan.object(position_id),
                    coin,
                ],
            )

        return await self._execute("burn", build)

    def _withdraw_call(
        self,
        plan: TransactionPlan,
        cfg: CollateralDeployment,
        position_id: str,
        amount: int,
    ) -> None:
        plan.move_call(
            self._target("withdraw_collateral"),
            [
                plan.object(self._deployment.protocol_state_id),
                plan.object(cfg.config_id),
                plan.object(cfg.vault_id),
                plan.object(position_id),
                plan.pure_u64(amount),
            ],
            [cfg.coin_type],
        )

    async def withdraw_partial(
        self, position_id: str, amount: str, collateral: str = "SUI"
    ) -> OperationRecord:
        async def build(plan: TransactionPlan) -> None:
            cfg = self._collateral(collateral)
            units = self._units(amount)
            position = await self._position(position_id)
            if units > position.collateral_amount:
                raise PrecheckFailed(
                    f"Requested {units} exceeds deposited collateral "
                    f"{position.collateral_amount}"
                )
            self._withdraw_call(plan, cfg, position_id, units)

        return await self._execute("withdraw_partial", build)

    async def withdraw_all(
        self, position_id: str, collateral: str = "SUI"
    ) -> OperationRecord:
        async def build(plan: TransactionPlan) -> None:
            cfg = self._collateral(collateral)
            position = await self._position(position_id)
            if position.debt_amount > 0:
                raise PrecheckFailed(
                    "Position still carries debt; burn it before withdrawing all collateral"
                )
            if position.collateral_amount == 0:
                raise PrecheckFailed("Position holds no collateral")
            self._withdraw_call(plan, cfg, position_id, position.collateral_amount)

        return await self._execute("withdraw_all", build)
