# hedrap/chain/schema.py
"""
Named, versioned return layouts for contract view functions.

Each layout is declared once here. The ABI fragments used by the clients are
generated from the same declaration, and decoding checks arity and every
field's type, so a contract whose return layout drifts fails loudly with a
ChainError instead of decoding into the wrong fields.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from web3 import Web3

from ..errors import ChainError


@dataclass(frozen=True)
class Field:
    name: str
    abi_type: str


@dataclass(frozen=True)
class Layout:
    name: str
    version: int
    fields: Tuple[Field, ...]

    @property
    def label(self) -> str:
        return f"{self.name} v{self.version}"

    def abi_outputs(self) -> List[Dict[str, str]]:
        return [{"name": f.name, "type": f.abi_type} for f in self.fields]

    def matches_abi(self, outputs: Sequence[Dict[str, Any]]) -> bool:
        types = [o.get("type") for o in outputs]
        return types == [f.abi_type for f in self.fields]

    def decode(self, values: Any) -> Dict[str, Any]:
        if len(self.fields) == 1 and not isinstance(values, (list, tuple)):
            values = [values]
        if not isinstance(values, (list, tuple)):
            raise ChainError(f"{self.label}: expected a tuple, got {type(values).__name__}")
        if len(values) != len(self.fields):
            raise ChainError(
                f"{self.label}: expected {len(self.fields)} values, got {len(values)}"
            )

        out: Dict[str, Any] = {}
        for f, v in zip(self.fields, values):
            if not _check_type(f.abi_type, v):
                raise ChainError(
                    f"{self.label}: field {f.name!r} expected {f.abi_type}, got {v!r}"
                )
            out[f.name] = _normalize(f.abi_type, v)
        return out


def _check_type(abi_type: str, value: Any) -> bool:
    if abi_type.endswith("[]"):
        inner = abi_type[:-2]
        return isinstance(value, (list, tuple)) and all(_check_type(inner, v) for v in value)
    if abi_type == "address":
        return isinstance(value, str) and Web3.is_address(value)
    if abi_type == "bool":
        return isinstance(value, bool)
    if abi_type.startswith(("uint", "int")):
        return isinstance(value, int) and not isinstance(value, bool)
    if abi_type == "string":
        return isinstance(value, str)
    if abi_type.startswith("bytes"):
        return isinstance(value, (bytes, bytearray))
    return False


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type.endswith("[]"):
        return [_normalize(abi_type[:-2], v) for v in value]
    if abi_type == "address":
        return Web3.to_checksum_address(value)
    if abi_type.startswith("bytes"):
        return Web3.to_hex(value)
    return value


def layout(name: str, version: int, *fields: Tuple[str, str]) -> Layout:
    return Layout(name, version, tuple(Field(n, t) for n, t in fields))


def function_abi(
    name: str,
    inputs: Sequence[Tuple[str, str]] = (),
    outputs: Sequence[Dict[str, str]] = (),
    mutability: str = "nonpayable",
) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": list(outputs),
        "stateMutability": mutability,
    }


def event_abi(name: str, *inputs: Tuple[str, str, bool]) -> Dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": idx} for n, t, idx in inputs],
    }


def single(abi_type: str) -> List[Dict[str, str]]:
    return [{"name": "", "type": abi_type}]


# ------------------------------------------------------------
# Battle contract layouts
# ------------------------------------------------------------

_BATTLE_FIELDS = (
    ("rapper1Address", "address"),
    ("rapper2Address", "address"),
    ("winner", "address"),
    ("rapper1FanVotes", "uint256"),
    ("rapper2FanVotes", "uint256"),
    ("rapper1JudgeVotes", "uint256"),
    ("rapper2JudgeVotes", "uint256"),
    ("endTime", "uint256"),
    ("status", "uint8"),
    ("rapper1Name", "string"),
    ("rapper2Name", "string"),
    ("videoUrl", "string"),
    ("startTime", "uint256"),
)

BATTLE = layout("Battle", 1, *_BATTLE_FIELDS)

BATTLE_WITH_SCORES = layout(
    "BattleWithScores",
    1,
    *_BATTLE_FIELDS,
    ("rapper1Score", "uint256"),
    ("rapper2Score", "uint256"),
)

# ------------------------------------------------------------
# Governor layouts
# ------------------------------------------------------------

PROPOSAL_VOTES = layout(
    "ProposalVotes",
    1,
    ("againstVotes", "uint256"),
    ("forVotes", "uint256"),
    ("abstainVotes", "uint256"),
)
