"""Helpers for SUI Move struct tags (coin types)."""
from __future__ import annotations

SUI_TYPE = "0x0000000000000000000000000000000000000000000000000000000000000002::sui::SUI"


def normalize_address(address: str) -> str:
    """Return a 0x-prefixed, 64-hex-digit lowercase address."""
    hex_part = address.lower().removeprefix("0x")
    return "0x" + hex_part.rjust(64, "0")


def normalize_struct_tag(coin_type: str) -> str:
    """Normalize a struct tag so equal types compare equal.

    Examples:
        "0x2::sui::SUI" → "0x000…002::sui::SUI"
        "dba3…::usdc::USDC" → "0xdba3…::usdc::USDC"

    Type parameters (``<...>``) are normalized recursively.
    """
    coin_type = coin_type.strip()
    if "<" in coin_type and coin_type.endswith(">"):
        head, _, params = coin_type.partition("<")
        inner = _split_type_params(params[:-1])
        return normalize_struct_tag(head) + "<" + ", ".join(
            normalize_struct_tag(p) for p in inner
        ) + ">"

    parts = coin_type.split("::")
    if len(parts) != 3:
        return coin_type
    address, module, name = parts
    return f"{normalize_address(address)}::{module}::{name}"


def _split_type_params(params: str) -> list[str]:
    depth = 0
    current: list[str] = []
    out: list[str] = []
    for ch in params:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            out.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if current:
        out.append("".join(current).strip())
    return out


def get_token_symbol(coin_type: str) -> str:
    """Extract token symbol from a SUI coin type string.

    Examples:
        "0x2::sui::SUI" → "SUI"
        "0xabc::coin::USDC" → "USDC"
    """
    if "::" in coin_type:
        return coin_type.split("::")[-1].upper()
    return coin_type.upper()


def type_params(struct_tag: str) -> list[str]:
    """Type parameters of a struct tag: ``a::m::S<X, Y>`` → ``[X, Y]``."""
    if "<" not in struct_tag or not struct_tag.endswith(">"):
        return []
    return _split_type_params(struct_tag.partition("<")[2][:-1])
