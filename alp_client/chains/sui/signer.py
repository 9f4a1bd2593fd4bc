"""Signer backed by the ``sui`` CLI keystore."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from ...config import SignerConfig
from ...errors import RemoteWriteFailed, SignerRejected
from .transactions import TransactionPlan

logger = logging.getLogger(__name__)


class SuiCliSigner:
    """Sign and execute plans with ``sui client ptb`` using the active address."""

    def __init__(self, config: SignerConfig) -> None:
        self.binary = config.sui_binary
        self.gas_budget = config.gas_budget

    def build_command(self, plan: TransactionPlan) -> list[str]:
        return [
            self.binary,
            "client",
            "ptb",
            *plan.to_ptb_args(),
            "--gas-budget",
            str(self.gas_budget),
            "--json",
        ]

    async def sign_and_submit(self, plan: TransactionPlan) -> dict[str, Any]:
        cmd = self.build_command(plan)
        logger.debug("Executing: %s", " ".join(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SignerRejected(f"Cannot run {self.binary}: {e}") from e

        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            reason = stderr.decode().strip() or stdout.decode().strip()
            raise RemoteWriteFailed(f"Transaction failed: {reason}")

        try:
            result = json.loads(stdout.decode())
        except json.JSONDecodeError as e:
            raise RemoteWriteFailed(f"Unreadable signer output: {e}") from e

        return check_effects(result)


def check_effects(result: dict[str, Any]) -> dict[str, Any]:
    """Raise ``RemoteWriteFailed`` with the revert reason unless execution succeeded."""
    status = result.get("effects", {}).get("status", {})
    if status.get("status") != "success":
        reason = status.get("error", "unknown error")
        raise RemoteWriteFailed(f"Transaction reverted: {reason}")
    logger.info("Transaction %s executed", result.get("digest", "?"))
    return result
