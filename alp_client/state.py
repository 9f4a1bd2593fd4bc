"""Protocol & position state cache: last-fetched snapshots of ledger state."""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field

from .config import NATIVE_COIN_TYPE, DeploymentConfig
from .interfaces.chain import LedgerReader
from .models import (
    Balances,
    CollateralConfig,
    CollateralPosition,
    OracleState,
    ProtocolState,
)
from .parser import (
    build_balances,
    is_current_deployment,
    object_fields,
    parse_coin,
    parse_collateral_config,
    parse_oracle_state,
    parse_position,
    parse_protocol_state,
)

logger = logging.getLogger(__name__)



@dataclass(frozen=True)
class StateSnapshot:
    protocol_state: ProtocolState | None = None
    oracle_state: OracleState | None = None
    collateral_configs: dict[str, CollateralConfig] = field(default_factory=dict)
    positions: tuple[CollateralPosition, ...] = ()
    balances: Balances | None = None
    last_error: str | None = None


class StateCache:
    """Holds one slot per state category, each replaced wholesale on refresh.

    Read failures never raise: the previous slot value is kept and the error
    is exposed through ``last_error``. Every refresh takes a ticket from a
    monotonic counter and only installs its result, or reports its failure,
    if no newer refresh of the same slot has already landed.
    """

    def __init__(self, ledger: LedgerReader, deployment: DeploymentConfig) -> None:
        self._ledger = ledger
        self._deployment = deployment

        self.protocol_state: ProtocolState | None = None
        self.oracle_state: OracleState | None = None
        self.collateral_configs: dict[str, CollateralConfig] = {}
        self.positions: tuple[CollateralPosition, ...] = ()
        self.balances: Balances | None = None
        self.last_error: str | None = None

        self._tickets = itertools.count(1)
        self._installed: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Slot bookkeeping
    # ------------------------------------------------------------------

    def _ticket(self) -> int:
        return next(self._tickets)

    def _superseded(self, slot: str, ticket: int) -> bool:
        return ticket <= self._installed.get(slot, 0)

    def _install(self, slot: str, ticket: int, value: object) -> bool:
        if self._superseded(slot, ticket):
            logger.debug("Discarding superseded %s refresh (ticket %d)", slot, ticket)
            return False
        self._installed[slot] = ticket
        setattr(self, slot, value)
        return True

    def _fail(self, slot: str, ticket: int, what: str, error: Exception) -> bool:
        if self._superseded(slot, ticket):
            logger.debug("Ignoring failure of superseded %s refresh: %s", slot, error)
            return False
        self.last_error = f"Failed to fetch {what}: {error}"
        logger.error(self.last_error)
        return False

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            protocol_state=self.protocol_state,
            oracle_state=self.oracle_state,
            collateral_configs=dict(self.collateral_configs),
            positions=self.positions,
            balances=self.balances,
            last_error=self.last_error,
        )

    # ------------------------------------------------------------------
    # Refreshes
    # ------------------------------------------------------------------

    async def refresh_protocol_state(self) -> bool:
        ticket = self._ticket()
        try:
            obj = await self._ledger.get_object(self._deployment.protocol_state_id)
            state = parse_protocol_state(object_fields(obj))
        except Exception as e:
            return self._fail("protocol_state", ticket, "protocol state", e)

        self._install("protocol_state", ticket, state)
        return True

    async def refresh_oracle_state(self) -> bool:
        """Read the oracle registry; a deployment without one has nothing to read."""
        if not self._deployment.oracle_state_id:
            return True

        ticket = self._ticket()
        try:
            obj = await self._ledger.get_object(self._deployment.oracle_state_id)
            state = parse_oracle_state(object_fields(obj))
        except Exception as e:
            return self._fail("oracle_state", ticket, "oracle state", e)

        if state.paused:
            logger.warning("Oracle is paused; contract prices will not update")
        self._install("oracle_state", ticket, state)
        return True

    async def refresh_collateral_configs(self) -> bool:
        ticket = self._ticket()
        names = list(self._deployment.collaterals)
        try:
            objects = await asyncio.gather(
                *(
                    self._ledger.get_object(self._deployment.collaterals[n].config_id)
                    for n in names
                )
            )
            configs = {
                name: parse_collateral_config(object_fields(obj))
                for name, obj in zip(names, objects)
            }
        except Exception as e:
            return self._fail("collateral_configs", ticket, "collateral configs", e)

        self._install("collateral_configs", ticket, configs)
        return True

    def _current_positions(self, objects: list[dict]) -> list[CollateralPosition]:
        package_id = self._deployment.package_id
        positions: list[CollateralPosition] = []
        for obj in objects:
            if not isinstance(obj, dict):
                logger.warning("Skipping non-object owned entry: %r", obj)
                continue
            data = obj.get("data") or {}
            if not is_current_deployment(data.get("type") or "", package_id):
                logger.debug(
                    "Skipping position from old contract: %s", data.get("objectId")
                )
                continue
            try:
                positions.append(parse_position(obj))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Malformed position %s: %s", data.get("objectId"), e)
        return positions

    async def refresh_positions(self, owner: str | None) -> bool:
        if not owner:
            return True

        ticket = self._ticket()
        try:
            objects = await self._ledger.get_owned_objects(
                owner, self._deployment.position_type
            )
            positions = self._current_positions(objects)
        except Exception as e:
            return self._fail("positions", ticket, "user positions", e)

        logger.info("Found %d positions for %s", len(positions), owner)
        self._install("positions", ticket, tuple(positions))
        return True

    async def refresh_balances(self, owner: str | None) -> bool:
        if not owner:
            return True

        ticket = self._ticket()
        stable_type = self._deployment.stable_coin_type
        try:
            stable_raw, native_raw = await asyncio.gather(
                self._ledger.get_coins(owner, stable_type),
                self._ledger.get_coins(owner, NATIVE_COIN_TYPE),
            )
            balances = build_balances(
                [parse_coin(c, stable_type) for c in stable_raw],
                [parse_coin(c, NATIVE_COIN_TYPE) for c in native_raw],
            )
        except Exception as e:
            return self._fail("balances", ticket, "balances", e)

        self._install("balances", ticket, balances)
        return True

    async def refresh_all(self, owner: str | None) -> StateSnapshot:
        """Refresh every slot concurrently; resolves once all have settled."""
        self.last_error = None
        await asyncio.gather(
            self.refresh_protocol_state(),
            self.refresh_oracle_state(),
            self.refresh_collateral_configs(),
            self.refresh_positions(owner),
            self.refresh_balances(owner),
        )
        return self.snapshot()
