"""Programmable transaction plans: an ordered list of ledger commands.

A plan is pure data: it is assembled by the orchestrator, inspected by tests
and rendered by a signer. Results of earlier commands are referenced by
``ResultArg`` so coin handling (merge, split) can feed later move calls.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ...errors import InvalidAmount

U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class ObjectArg:
    object_id: str


@dataclass(frozen=True)
class PureU64:
    value: int


@dataclass(frozen=True)
class GasCoin:
    pass


@dataclass(frozen=True)
class ResultArg:
    command: int
    index: int | None = None


Argument = Union[ObjectArg, PureU64, GasCoin, ResultArg]


@dataclass(frozen=True)
class MergeCoins:
    destination: Argument
    sources: tuple[Argument, ...]


@dataclass(frozen=True)
class SplitCoins:
    coin: Argument
    amounts: tuple[PureU64, ...]


@dataclass(frozen=True)
class MoveCall:
    target: str
    type_arguments: tuple[str, ...]
    arguments: tuple[Argument, ...]


Command = Union[MergeCoins, SplitCoins, MoveCall]


class TransactionPlan:
    """Builder for an ordered sequence of commands."""

    gas = GasCoin()

    def __init__(self) -> None:
        self.commands: list[Command] = []

    @staticmethod
    def object(object_id: str) -> ObjectArg:
        return ObjectArg(object_id)

    @staticmethod
    def pure_u64(value: int) -> PureU64:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidAmount(f"u64 argument must be an int, got {value!r}")
        if not 0 <= value <= U64_MAX:
            raise InvalidAmount(f"u64 argument out of range: {value}")
        return PureU64(value)

    def _push(self, command: Command) -> int:
        self.commands.append(command)
        return len(self.commands) - 1

    def merge_coins(self, destination: Argument, sources: list[Argument]) -> None:
        if sources:
            self._push(MergeCoins(destination, tuple(sources)))

    def split_coins(self, coin: Argument, amounts: list[int]) -> list[ResultArg]:
        idx = self._push(
            SplitCoins(coin, tuple(self.pure_u64(a) for a in amounts))
        )
        return [ResultArg(idx, i) for i in range(len(amounts))]

    def move_call(
        self,
        target: str,
        arguments: list[Argument],
        type_arguments: list[str] | None = None,
    ) -> ResultArg:
        idx = self._push(
            MoveCall(target, tuple(type_arguments or ()), tuple(arguments))
        )
        return ResultArg(idx)

    # ------------------------------------------------------------------
    # sui client ptb rendering
    # ------------------------------------------------------------------

    @staticmethod
    def _render_arg(arg: Argument) -> str:
        if isinstance(arg, ObjectArg):
            return f"@{arg.object_id}"
        if isinstance(arg, PureU64):
            return f"{arg.value}u64"
        if isinstance(arg, GasCoin):
            return "gas"
        if arg.index is None:
            return f"result_{arg.command}"
        return f"result_{arg.command}.{arg.index}"

    def to_ptb_args(self) -> list[str]:
        """Render as ``sui client ptb`` arguments (one list item per token)."""
        args: list[str] = []
        for idx, command in enumerate(self.commands):
            if isinstance(command, MergeCoins):
                sources = ",".join(self._render_arg(s) for s in command.sources)
                args += [
                    "--merge-coins",
                    self._render_arg(command.destination),
                    f"[{sources}]",
                ]
                continue

            if isinstance(command, SplitCoins):
                amounts = ",".join(self._render_arg(a) for a in command.amounts)
                args += ["--split-coins", self._render_arg(command.coin), f"[{amounts}]"]
            else:
                args += ["--move-call", command.target]
                if command.type_arguments:
                    args.append(f"<{','.join(command.type_arguments)}>")
                args += [self._render_arg(a) for a in command.arguments]
            args += ["--assign", f"result_{idx}"]
        return args
