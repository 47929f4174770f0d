"""
Parallel verification of independent proofs.

Verification functions in this package are pure, so a batch of spend proofs,
ring signatures or membership proofs can be fanned out over a
concurrent.futures pool. Results always come back in input order.

Use "process" for large batches of curve-heavy proofs; the default thread
pool is enough for small batches and for tests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from functools import partial
from itertools import repeat
from typing import Any

from shielded_core.config import DEFAULT_CONFIG, CoreConfig
from shielded_core.core.errors import VerificationResult
from shielded_core.privacy import ring_signature
from shielded_core.privacy.accumulator import MembershipProof, verify_membership
from shielded_core.privacy.ring_signature import RingSignature
from shielded_core.privacy.spend import SpendProof, verify_spend_proof

logger = logging.getLogger("shielded_core.batch")

EXECUTOR_KINDS = ("thread", "process")


class BatchVerifier:
    """
    Verifies many independent proofs on a worker pool.

    Usage:
        verifier = BatchVerifier(kind="thread")
        results = verifier.verify_spend_proofs(proofs, output_root)
        accepted = [p for p, r in zip(proofs, results) if r]
    """

    def __init__(
        self,
        config: CoreConfig = DEFAULT_CONFIG,
        kind: str = "thread",
        max_workers: int | None = None,
    ):
        if kind not in EXECUTOR_KINDS:
            raise ValueError(f"kind must be one of {EXECUTOR_KINDS}, got {kind!r}")
        self.config = config
        self.kind = kind
        self.max_workers = max_workers or config.verify_workers

    def _executor(self) -> Executor:
        if self.kind == "process":
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(max_workers=self.max_workers)

    def _run(self, fn: Callable[..., Any], *iterables: Iterable[Any]) -> list[Any]:
        batches = [list(it) for it in iterables]
        if not batches[0]:
            return []
        with self._executor() as pool:
            results = list(pool.map(fn, *batches))
        logger.debug(f"Verified {len(results)} items on a {self.kind} pool")
        return results

    def verify_spend_proofs(
        self,
        proofs: Sequence[SpendProof],
        output_root: int,
    ) -> list[VerificationResult]:
        return self._run(partial(verify_spend_proof, output_root=output_root), proofs)

    def verify_ring_signatures(
        self,
        signatures: Sequence[RingSignature],
        messages: Sequence[bytes | str],
    ) -> list[VerificationResult]:
        """
        Verify signatures[i] over messages[i] for every i.

        Raises:
            ValueError: If the two sequences differ in length.
        """
        if len(signatures) != len(messages):
            raise ValueError(
                f"{len(signatures)} signatures but {len(messages)} messages"
            )
        return self._run(
            ring_signature.verify, signatures, messages, repeat(self.config, len(signatures))
        )

    def verify_memberships(
        self,
        proofs: Sequence[MembershipProof],
        root: int,
        size: int | None = None,
    ) -> list[bool]:
        return self._run(partial(verify_membership, root=root, size=size), proofs)
