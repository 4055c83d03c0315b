"""Wallet coin selection for bundle inputs."""
from __future__ import annotations

from ...coin_types import SUI_TYPE, normalize_struct_tag
from ...interfaces.chain import ChainClient
from .transaction import Argument, InstructionBundle


def zero_coin(bundle: InstructionBundle, coin_type: str) -> Argument:
    return bundle.move_call("0x2::coin::zero", [], [coin_type])


async def get_input_coins(
    bundle: InstructionBundle,
    client: ChainClient,
    owner: str,
    coin_type: str,
    *amounts: int,
) -> list[Argument]:
    """Coins of ``amounts`` taken from the owner's wallet.

    SUI is split from the gas coin; other types merge every owned coin into
    one and split from it. With all-zero amounts (or an empty wallet) a zero
    coin is returned instead.
    """
    if all(int(a) <= 0 for a in amounts):
        return [zero_coin(bundle, coin_type)]

    if normalize_struct_tag(coin_type) == SUI_TYPE:
        return bundle.split_coins(bundle.gas, list(amounts))

    owned = await client.get_coins(owner, coin_type)
    if not owned:
        return [zero_coin(bundle, coin_type)]

    main, *others = [bundle.object(c["coinObjectId"]) for c in owned]
    if others:
        bundle.merge_coins(main, others)
    return bundle.split_coins(main, list(amounts))
