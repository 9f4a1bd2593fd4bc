"""Integration tests for the transaction orchestrator state machine."""
from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from alp_client.chains.sui.transactions import (
    GasCoin,
    MergeCoins,
    MoveCall,
    ObjectArg,
    PureU64,
    ResultArg,
    SplitCoins,
    TransactionPlan,
)
from alp_client.config import DeploymentConfig
from alp_client.errors import InvalidAmount, PrecheckFailed, RemoteWriteFailed, SignerRejected
from alp_client.models import Balances
from alp_client.orchestrator import OperationStatus, TransactionOrchestrator

OWNER = "0xWALLET123"
SUCCESS = {"digest": "DIGEST1", "effects": {"status": {"status": "success"}}}


@pytest.fixture()
def signer() -> MagicMock:
    mock = MagicMock()
    mock.sign_and_submit = AsyncMock(return_value=SUCCESS)
    return mock


@pytest.fixture()
def cache() -> MagicMock:
    mock = MagicMock()
    mock.refresh_all = AsyncMock()
    mock.balances = None
    return mock


@pytest.fixture()
def orchestrator(
    ledger: AsyncMock,
    signer: MagicMock,
    cache: MagicMock,
    sample_deployment: DeploymentConfig,
) -> TransactionOrchestrator:
    return TransactionOrchestrator(ledger, signer, cache, sample_deployment, OWNER)


def _submitted_plan(signer: MagicMock) -> TransactionPlan:
    return signer.sign_and_submit.await_args[0][0]


class TestBurn:
    @pytest.mark.asyncio
    async def test_merges_then_splits_exact_amount(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        # holdings of 100 and 50 base units, burn 120
        record = await orchestrator.burn("0xposition1", "0.00000012")

        assert record.status is OperationStatus.CONFIRMED
        assert record.digest == "DIGEST1"
        commands = _submitted_plan(signer).commands
        assert commands[0] == MergeCoins(ObjectArg("0xalp1"), (ObjectArg("0xalp2"),))
        assert commands[1] == SplitCoins(ObjectArg("0xalp1"), (PureU64(120),))
        assert commands[2] == MoveCall(
            "0xpkg::alp::burn_alp",
            (),
            (
                ObjectArg("0xprotocol"),
                ObjectArg("0xsuiconfig"),
                ObjectArg("0xposition1"),
                ResultArg(1, 0),
            ),
        )

    @pytest.mark.asyncio
    async def test_insufficient_balance_never_signs(
        self,
        orchestrator: TransactionOrchestrator,
        signer: MagicMock,
        cache: MagicMock,
    ) -> None:
        with pytest.raises(PrecheckFailed, match="requested 151, available 150"):
            await orchestrator.burn("0xposition1", "0.000000151")

        signer.sign_and_submit.assert_not_awaited()
        cache.refresh_all.assert_not_awaited()
        assert orchestrator.status is OperationStatus.FAILED
        assert "Insufficient balance" in orchestrator.history[-1].error

    @pytest.mark.asyncio
    async def test_cached_shortfall_fails_before_reading_coins(
        self,
        orchestrator: TransactionOrchestrator,
        ledger: AsyncMock,
        signer: MagicMock,
        cache: MagicMock,
    ) -> None:
        cache.balances = Balances(stable=119, native=0)

        with pytest.raises(PrecheckFailed, match="requested 120, available 119"):
            await orchestrator.burn("0xposition1", "0.00000012")

        ledger.get_coins.assert_not_awaited()
        signer.sign_and_submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_coins(
        self, orchestrator: TransactionOrchestrator, ledger: AsyncMock
    ) -> None:
        ledger.get_coins.side_effect = None
        ledger.get_coins.return_value = []

        with pytest.raises(PrecheckFailed, match="No spendable"):
            await orchestrator.burn("0xposition1", "1")

    @pytest.mark.asyncio
    async def test_single_coin_skips_merge(
        self, orchestrator: TransactionOrchestrator, ledger: AsyncMock, signer: MagicMock
    ) -> None:
        ledger.get_coins.side_effect = None
        ledger.get_coins.return_value = [{"coinObjectId": "0xonly", "balance": "500"}]

        await orchestrator.burn("0xposition1", "0.0000005")

        commands = _submitted_plan(signer).commands
        assert commands[0] == SplitCoins(ObjectArg("0xonly"), (PureU64(500),))
        assert len(commands) == 2


class TestStateMachine:
    @pytest.mark.asyncio
    async def test_success_refreshes_before_confirming(
        self,
        orchestrator: TransactionOrchestrator,
        signer: MagicMock,
        cache: MagicMock,
    ) -> None:
        seen: list[OperationStatus] = []

        async def sign(plan: TransactionPlan) -> dict[str, Any]:
            seen.append(orchestrator.status)
            return SUCCESS

        async def refresh(owner: str) -> None:
            seen.append(orchestrator.status)

        signer.sign_and_submit.side_effect = sign
        cache.refresh_all.side_effect = refresh

        record = await orchestrator.mint("0xposition1", "10")

        assert seen == [OperationStatus.AWAITING_SIGNATURE, OperationStatus.SUBMITTED]
        assert record.status is OperationStatus.CONFIRMED
        cache.refresh_all.assert_awaited_once_with(OWNER)

    @pytest.mark.asyncio
    async def test_signer_rejection_fails_without_refresh(
        self,
        orchestrator: TransactionOrchestrator,
        signer: MagicMock,
        cache: MagicMock,
    ) -> None:
        signer.sign_and_submit.side_effect = SignerRejected("User rejected the request")

        with pytest.raises(SignerRejected):
            await orchestrator.mint("0xposition1", "10")

        record = orchestrator.history[-1]
        assert record.status is OperationStatus.FAILED
        assert record.error == "User rejected the request"
        assert record.plan is not None
        cache.refresh_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revert_reason_reported_verbatim(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        signer.sign_and_submit.side_effect = RemoteWriteFailed(
            "Transaction reverted: MoveAbort(alp, 2)"
        )

        with pytest.raises(RemoteWriteFailed, match="MoveAbort\\(alp, 2\\)"):
            await orchestrator.mint("0xposition1", "10")

        assert orchestrator.history[-1].error == "Transaction reverted: MoveAbort(alp, 2)"

    @pytest.mark.asyncio
    async def test_wallet_not_connected(
        self,
        ledger: AsyncMock,
        signer: MagicMock,
        cache: MagicMock,
        sample_deployment: DeploymentConfig,
    ) -> None:
        orchestrator = TransactionOrchestrator(ledger, signer, cache, sample_deployment, None)

        with pytest.raises(PrecheckFailed, match="Wallet not connected"):
            await orchestrator.mint("0xposition1", "10")

        signer.sign_and_submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_signer(
        self, ledger: AsyncMock, cache: MagicMock, sample_deployment: DeploymentConfig
    ) -> None:
        orchestrator = TransactionOrchestrator(ledger, None, cache, sample_deployment, OWNER)

        with pytest.raises(PrecheckFailed, match="No signer configured"):
            await orchestrator.mint("0xposition1", "10")

    def test_idle_before_any_operation(self, orchestrator: TransactionOrchestrator) -> None:
        assert orchestrator.status is OperationStatus.IDLE
        assert not orchestrator.history

    @pytest.mark.asyncio
    async def test_history_keeps_most_recent_records(
        self,
        ledger: AsyncMock,
        signer: MagicMock,
        cache: MagicMock,
        sample_deployment: DeploymentConfig,
    ) -> None:
        orchestrator = TransactionOrchestrator(
            ledger, signer, cache, sample_deployment, OWNER, history_limit=2
        )

        await orchestrator.mint("0xposition1", "1")
        await orchestrator.mint("0xposition1", "2")
        await orchestrator.burn("0xposition1", "0.0000001")

        assert [r.operation for r in orchestrator.history] == ["mint", "burn"]
        assert orchestrator.status is OperationStatus.CONFIRMED


class TestAmountValidation:
    @pytest.mark.asyncio
    async def test_zero_amount(self, orchestrator: TransactionOrchestrator) -> None:
        with pytest.raises(PrecheckFailed, match="greater than zero"):
            await orchestrator.mint("0xposition1", "0")

    @pytest.mark.asyncio
    async def test_malformed_amount(self, orchestrator: TransactionOrchestrator) -> None:
        with pytest.raises(InvalidAmount):
            await orchestrator.mint("0xposition1", "ten")
        assert orchestrator.status is OperationStatus.FAILED

    @pytest.mark.asyncio
    async def test_unknown_collateral(self, orchestrator: TransactionOrchestrator) -> None:
        with pytest.raises(PrecheckFailed, match="Unknown collateral type"):
            await orchestrator.add_collateral("0xposition1", "1", collateral="BTC")


class TestOpenAndDeposit:
    @pytest.mark.asyncio
    async def test_open_splits_native_from_gas(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        await orchestrator.open_position("100", "50")

        commands = _submitted_plan(signer).commands
        assert commands[0] == SplitCoins(GasCoin(), (PureU64(100_000_000_000),))
        assert commands[1] == MoveCall(
            "0xpkg::alp::create_position",
            ("0x2::sui::SUI",),
            (
                ObjectArg("0xprotocol"),
                ObjectArg("0xsuiconfig"),
                ObjectArg("0xsuivault"),
                ResultArg(0, 0),
                PureU64(50_000_000_000),
            ),
        )

    @pytest.mark.asyncio
    async def test_open_without_debt(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        await orchestrator.open_position("100", "0")
        assert _submitted_plan(signer).commands[1].arguments[-1] == PureU64(0)

    @pytest.mark.asyncio
    async def test_open_exceeding_native_balance(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        with pytest.raises(PrecheckFailed, match="Insufficient balance"):
            await orchestrator.open_position("5001", "0")
        signer.sign_and_submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_collateral(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        await orchestrator.add_collateral("0xposition1", "2,5")

        call = _submitted_plan(signer).commands[1]
        assert call.target == "0xpkg::alp::add_collateral"
        assert call.arguments[3] == ObjectArg("0xposition1")
        assert _submitted_plan(signer).commands[0].amounts == (PureU64(2_500_000_000),)


class TestWithdraw:
    @pytest.mark.asyncio
    async def test_withdraw_all_with_debt_fails(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        with pytest.raises(PrecheckFailed, match="still carries debt"):
            await orchestrator.withdraw_all("0xposition1")
        signer.sign_and_submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_withdraw_all_debt_free(
        self,
        orchestrator: TransactionOrchestrator,
        signer: MagicMock,
        position_fields: dict[str, Any],
    ) -> None:
        position_fields["alp_minted"] = "0"

        await orchestrator.withdraw_all("0xposition1")

        [call] = _submitted_plan(signer).commands
        assert call.target == "0xpkg::alp::withdraw_collateral"
        assert call.type_arguments == ("0x2::sui::SUI",)
        assert call.arguments[-1] == PureU64(10_000_000_000_000)

    @pytest.mark.asyncio
    async def test_withdraw_partial(
        self, orchestrator: TransactionOrchestrator, signer: MagicMock
    ) -> None:
        await orchestrator.withdraw_partial("0xposition1", "1.5")

        [call] = _submitted_plan(signer).commands
        assert call.arguments == (
            ObjectArg("0xprotocol"),
            ObjectArg("0xsuiconfig"),
            ObjectArg("0xsuivault"),
            ObjectArg("0xposition1"),
            PureU64(1_500_000_000),
        )

    @pytest.mark.asyncio
    async def test_withdraw_partial_exceeding_collateral(
        self, orchestrator: TransactionOrchestrator
    ) -> None:
        with pytest.raises(PrecheckFailed, match="exceeds deposited collateral"):
            await orchestrator.withdraw_partial("0xposition1", "10001")

    @pytest.mark.asyncio
    async def test_unknown_position(self, orchestrator: TransactionOrchestrator) -> None:
        with pytest.raises(PrecheckFailed, match="not found"):
            await orchestrator.withdraw_all("0xmissing")
