"""
Replay adapter: deterministic replay and certification through EngineService.

Dependency direction: replay imports from engine.logic and shared.
Engine logic modules never import from replay.
"""

from engine.replay.loader import (
    ReplayLoadError,
    dump_replay,
    load_replay_from_file,
    load_replay_from_string,
)
from engine.replay.models import (
    REPLAY_VERSION,
    ReplayAction,
    ReplayError,
    ReplayInput,
    ReplayInvariantError,
    ReplayStep,
    ReplayStepLimitError,
    ReplayTrace,
)
from engine.replay.runner import (
    ReplayOptions,
    ReplayServiceProtocol,
    make_service_factory,
    run_replay,
)
from engine.replay.verifier import (
    DEFAULT_CERTIFICATION_RUNS,
    CertificationReport,
    DiffOptions,
    ReplayVerifier,
)

__all__ = [
    "DEFAULT_CERTIFICATION_RUNS",
    "REPLAY_VERSION",
    "CertificationReport",
    "DiffOptions",
    "ReplayAction",
    "ReplayError",
    "ReplayInput",
    "ReplayInvariantError",
    "ReplayLoadError",
    "ReplayOptions",
    "ReplayServiceProtocol",
    "ReplayStep",
    "ReplayStepLimitError",
    "ReplayTrace",
    "ReplayVerifier",
    "dump_replay",
    "load_replay_from_file",
    "load_replay_from_string",
    "make_service_factory",
    "run_replay",
]
