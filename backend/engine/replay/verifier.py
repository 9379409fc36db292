"""
Replay verifier: certifies that the engine is a pure function of its input.

certify() runs the same ReplayInput N times through independent engines
and compares every artifact against the first run, and also checks each
run's fold of its own event log against its live final state. Any
difference is fatal and reported in full through DeterminismFailure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from engine.logic.diff import artifact_digest, structural_diff
from engine.logic.exceptions import DeterminismFailure, EngineError, EventSequenceError
from engine.logic.fold import fold_events
from engine.replay.runner import ReplayOptions, make_service_factory, run_replay

if TYPE_CHECKING:
    from collections.abc import Sequence

    from engine.logic.catalog import CardCatalog
    from engine.logic.registry import RegistrySet
    from engine.logic.state import GameState
    from engine.replay.models import ReplayInput, ReplayTrace
    from engine.replay.runner import ServiceFactory
    from shared.dal.models import EventRecord

logger = structlog.get_logger()

DEFAULT_CERTIFICATION_RUNS = 100


@dataclass(frozen=True)
class DiffOptions:
    """Keys excluded from comparison (for runs that did not share an injected clock)."""

    ignore_keys: frozenset[str] = frozenset()


class CertificationReport(BaseModel):
    """Summary of a successful certification."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    match_id: str
    runs: int
    event_count: int
    digest: str


class ReplayVerifier:
    """Runs and compares independent replays of one input bundle."""

    def __init__(
        self,
        catalog: CardCatalog,
        registries: RegistrySet,
        *,
        diff_options: DiffOptions | None = None,
        service_factory: ServiceFactory | None = None,
        default_runs: int = DEFAULT_CERTIFICATION_RUNS,
    ) -> None:
        self._catalog = catalog
        self._diff_options = diff_options or DiffOptions()
        self._service_factory = service_factory or make_service_factory(catalog, registries)
        self.default_runs = default_runs

    def run_once(self, replay: ReplayInput) -> ReplayTrace:
        return run_replay(replay, ReplayOptions(strict=False), service_factory=self._service_factory)

    def compare(self, reference: ReplayTrace, candidate: ReplayTrace) -> list[str]:
        """Path-level differences between two runs' artifacts."""
        return structural_diff(
            reference.artifacts(),
            candidate.artifacts(),
            ignore_keys=self._diff_options.ignore_keys,
        )

    def fold_diff(self, events: Sequence[EventRecord], expected: GameState) -> list[str]:
        """Differences between a fresh fold of ``events`` and ``expected``."""
        try:
            folded = fold_events(events, self._catalog)
        except (EngineError, EventSequenceError) as exc:
            return [f"fold failed: {exc}"]
        return structural_diff(
            expected.model_dump(mode="json"),
            folded.state.model_dump(mode="json"),
            ignore_keys=self._diff_options.ignore_keys,
        )

    def verify_log(self, events: Sequence[EventRecord], expected: GameState) -> GameState:
        """
        Compare a fresh fold of a stored log against a stored state.

        Raises:
            DeterminismFailure: If the fold differs or cannot be computed

        """
        diffs = self.fold_diff(events, expected)
        if diffs:
            raise DeterminismFailure(diffs)
        return expected

    def certify(self, replay: ReplayInput, runs: int | None = None) -> CertificationReport:
        """
        Run ``replay`` ``runs`` times, or ``default_runs`` times, and require zero diffs.

        Raises:
            ValueError: If runs is less than 1
            DeterminismFailure: Carrying every diff from every diverging run

        """
        if runs is None:
            runs = self.default_runs
        if runs < 1:
            raise ValueError(f"runs must be at least 1, got {runs}")

        reference = self.run_once(replay)
        diffs = [f"run 0: {line}" for line in self.fold_diff(reference.events, reference.final_state)]
        for run in range(1, runs):
            candidate = self.run_once(replay)
            diffs.extend(f"run {run}: {line}" for line in self.compare(reference, candidate))
            diffs.extend(f"run {run}: {line}" for line in self.fold_diff(candidate.events, candidate.final_state))

        if diffs:
            logger.error(
                "determinism certification failed",
                session_id=replay.session_id,
                match_id=replay.match_id,
                diff_count=len(diffs),
            )
            raise DeterminismFailure(diffs, session_id=replay.session_id, match_id=replay.match_id)

        report = CertificationReport(
            session_id=replay.session_id,
            match_id=replay.match_id,
            runs=runs,
            event_count=len(reference.events),
            digest=artifact_digest(reference.artifacts()),
        )
        logger.info("determinism certified", runs=runs, digest=report.digest, session_id=replay.session_id)
        return report
