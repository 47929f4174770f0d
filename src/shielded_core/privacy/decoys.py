"""
Decoy-input mixing for spends.

Picks pseudorandom non-real outputs from the ledger's output pool and hides
the real input at a random position among them. Only outputs in the same
denomination bin and old enough to be confirmed are eligible, so the real
input does not stand out by amount class or by age.
"""

from __future__ import annotations

import logging
import random
import secrets
from collections.abc import Iterable
from dataclasses import dataclass

from shielded_core.config import DEFAULT_CONFIG, CoreConfig
from shielded_core.core.errors import InsufficientPool, MalformedInput

logger = logging.getLogger("shielded_core.decoys")


@dataclass(frozen=True)
class PoolEntry:
    """An output as seen by decoy selection."""
    global_index: int
    denomination_bin: int
    creation_height: int = 0


@dataclass(frozen=True)
class DecoySelection:
    """
    Result of mixing one real input with decoys.

    Attributes:
        members: Global indices of the full anonymity set, real input included.
        real_index: Position of the real input within `members`.
        decoys: The decoy global indices, in the order they were drawn.
    """
    members: tuple[int, ...]
    real_index: int
    decoys: tuple[int, ...]

    @property
    def real_global_index(self) -> int:
        return self.members[self.real_index]


def select_decoys(
    pool: Iterable[PoolEntry],
    real_global_index: int,
    decoy_count: int | None = None,
    denomination_bin: int | None = None,
    seed: int | None = None,
    current_height: int | None = None,
    min_confirmations: int | None = None,
    config: CoreConfig = DEFAULT_CONFIG,
) -> DecoySelection:
    """
    Draw `decoy_count` distinct decoys and place the real input among them.

    Args:
        pool: Candidate outputs (may include the real one; it is skipped).
        real_global_index: Global index of the input being spent.
        decoy_count: Number of decoys; defaults to config.decoy_count.
        denomination_bin: Required bin. Defaults to the real input's bin
            when the real input appears in `pool`, else no bin filter.
        seed: Fixed seed for reproducible selection; CSPRNG when omitted.
        current_height: Chain height for the age filter; no filter when None.
        min_confirmations: Minimum output age; defaults to config.min_confirmations.
        config: Anonymity-set bounds.

    Raises:
        MalformedInput: Negative decoy_count.
        SizeConstraintViolation: decoy_count + 1 outside the ring-size bounds.
        InsufficientPool: Not enough eligible decoys.
    """
    if decoy_count is None:
        decoy_count = config.decoy_count
    if decoy_count < 0:
        raise MalformedInput(f"decoy_count must be non-negative, got {decoy_count}")
    config.validate_ring_size(decoy_count + 1)
    if min_confirmations is None:
        min_confirmations = config.min_confirmations

    entries = list(pool)
    if denomination_bin is None:
        denomination_bin = next(
            (e.denomination_bin for e in entries if e.global_index == real_global_index),
            None,
        )

    eligible: list[int] = []
    seen: set[int] = {real_global_index}
    for e in entries:
        if e.global_index in seen:
            continue
        if denomination_bin is not None and e.denomination_bin != denomination_bin:
            continue
        if current_height is not None and current_height - e.creation_height < min_confirmations:
            continue
        seen.add(e.global_index)
        eligible.append(e.global_index)

    if len(eligible) < decoy_count:
        raise InsufficientPool(
            f"Need {decoy_count} decoys in bin {denomination_bin}, only {len(eligible)} eligible"
        )

    rng: random.Random = random.Random(seed) if seed is not None else secrets.SystemRandom()
    decoys = rng.sample(eligible, decoy_count)
    real_index = rng.randrange(decoy_count + 1)
    members = (*decoys[:real_index], real_global_index, *decoys[real_index:])

    logger.debug(f"Mixed input {real_global_index} with {decoy_count} decoys from {len(eligible)}")
    return DecoySelection(members=members, real_index=real_index, decoys=tuple(decoys))
