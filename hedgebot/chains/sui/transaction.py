"""Programmable transaction bundle — typed steps, all-or-nothing submission."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ...errors import DryRunFailed, RpcRejected, SubmissionFailed
from ...interfaces.chain import ChainClient
from ...interfaces.signer import Signer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Argument:
    """Reference to a transaction input or to the result of an earlier step."""

    kind: str
    index: int = 0
    sub_index: int = 0

    def to_json(self) -> dict[str, Any]:
        if self.kind == "GasCoin":
            return {"GasCoin": True}
        if self.kind == "NestedResult":
            return {"NestedResult": [self.index, self.sub_index]}
        return {self.kind: self.index}

    def nested(self, sub_index: int) -> Argument:
        """The ``sub_index``-th value returned by a multi-result step."""
        if self.kind != "Result":
            raise ValueError(f"Only step results can be indexed, got {self.kind}")
        return Argument("NestedResult", self.index, sub_index)


GAS_COIN = Argument("GasCoin")


class InstructionBundle:
    """Ordered steps executed atomically by a single sender.

    Steps are appended while the bundle is built; nothing touches the chain
    until :meth:`validate` (dry-run) and :meth:`submit` (sign + execute).
    Changing the bundle after validation requires validating again, and a
    bundle is submitted at most once.
    """

    def __init__(self, sender: str) -> None:
        self.sender = sender
        self._inputs: list[dict[str, Any]] = []
        self._objects: dict[str, Argument] = {}
        self._commands: list[dict[str, Any]] = []
        self._tx_bytes: str | None = None
        self._submitted = False

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    @property
    def gas(self) -> Argument:
        return GAS_COIN

    @property
    def commands(self) -> tuple[dict[str, Any], ...]:
        return tuple(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def object(self, object_id: str) -> Argument:
        """Input referencing an on-chain object (deduplicated)."""
        if object_id not in self._objects:
            self._objects[object_id] = self._add_input({"Object": object_id})
        return self._objects[object_id]

    def pure(self, value: Any, type_tag: str) -> Argument:
        if type_tag.startswith("u") and isinstance(value, int):
            value = str(value)
        return self._add_input({"Pure": {"type": type_tag, "value": value}})

    def move_call(
        self,
        target: str,
        arguments: list[Argument] | tuple[Argument, ...] = (),
        type_arguments: list[str] | tuple[str, ...] = (),
    ) -> Argument:
        package, module, function = target.split("::")
        return self._add_command(
            {
                "MoveCall": {
                    "package": package,
                    "module": module,
                    "function": function,
                    "typeArguments": list(type_arguments),
                    "arguments": [a.to_json() for a in arguments],
                }
            }
        )

    def split_coins(self, coin: Argument, amounts: list[int]) -> list[Argument]:
        result = self._add_command(
            {
                "SplitCoins": {
                    "coin": coin.to_json(),
                    "amounts": [self.pure(a, "u64").to_json() for a in amounts],
                }
            }
        )
        return [result.nested(i) for i in range(len(amounts))]

    def merge_coins(self, destination: Argument, sources: list[Argument]) -> None:
        self._add_command(
            {
                "MergeCoins": {
                    "destination": destination.to_json(),
                    "sources": [s.to_json() for s in sources],
                }
            }
        )

    def transfer_objects(self, objects: list[Argument], address: str) -> None:
        self._add_command(
            {
                "TransferObjects": {
                    "objects": [o.to_json() for o in objects],
                    "address": self.pure(address, "address").to_json(),
                }
            }
        )

    def move_call_targets(self) -> list[str]:
        """``package::module::function`` of every MoveCall, in order."""
        targets = []
        for command in self._commands:
            call = command.get("MoveCall")
            if call:
                targets.append(f"{call['package']}::{call['module']}::{call['function']}")
        return targets

    def to_payload(self) -> dict[str, Any]:
        return {
            "version": 2,
            "sender": self.sender,
            "inputs": list(self._inputs),
            "commands": list(self._commands),
        }

    def _add_input(self, spec: dict[str, Any]) -> Argument:
        self._tx_bytes = None
        self._inputs.append(spec)
        return Argument("Input", len(self._inputs) - 1)

    def _add_command(self, spec: dict[str, Any]) -> Argument:
        if self._submitted:
            raise RuntimeError("Bundle already submitted")
        self._tx_bytes = None
        self._commands.append(spec)
        return Argument("Result", len(self._commands) - 1)

    # ------------------------------------------------------------------
    # Validation & submission
    # ------------------------------------------------------------------

    async def validate(self, client: ChainClient) -> dict[str, Any]:
        """Dry-run the bundle; raise DryRunFailed unless it would succeed."""
        tx_bytes = await client.build_transaction(self.to_payload())
        try:
            result = await client.dry_run_transaction_block(tx_bytes)
        except RpcRejected as e:
            raise DryRunFailed(
                "Dry-run rejected the bundle",
                error=e.context.get("error", str(e)),
                steps=len(self._commands),
            ) from e
        status = result.get("effects", {}).get("status", {})
        if status.get("status") != "success":
            raise DryRunFailed(
                "Dry-run rejected the bundle",
                error=status.get("error", "unknown"),
                steps=len(self._commands),
            )
        self._tx_bytes = tx_bytes
        logger.debug("Dry-run succeeded (%d steps)", len(self._commands))
        return result

    async def submit(self, client: ChainClient, signer: Signer) -> dict[str, Any]:
        """Sign and execute the validated bundle as one unit."""
        if self._submitted:
            raise SubmissionFailed("Bundle already submitted")
        if self._tx_bytes is None:
            raise SubmissionFailed("Bundle must pass validate() before submit()")

        signature = signer.sign_transaction(self._tx_bytes)
        self._submitted = True
        try:
            result = await client.execute_transaction_block(self._tx_bytes, signature)
        except Exception as e:
            raise SubmissionFailed(f"Execution request failed: {e}") from e

        digest = result.get("digest", "")
        status = result.get("effects", {}).get("status", {})
        if status.get("status") != "success":
            raise SubmissionFailed(
                "Transaction failed on-chain",
                digest=digest,
                error=status.get("error", "unknown"),
            )
        logger.info("Transaction %s executed", digest)
        return result
