from __future__ import annotations

import mvtb

EXPECTED_EXPORTS = (
    "main",
    "run_cli",
    "RunRequest",
    "RunResult",
    "CLIAppError",
    "ConfigurationError",
    "ProbeError",
    "DecodeError",
    "CompositionError",
    "WriteError",
)


def test_public_surface_matches_curated_exports() -> None:
    assert hasattr(mvtb, "__all__")
    assert tuple(mvtb.__all__) == EXPECTED_EXPORTS


def test_curated_exports_are_available_without_privates() -> None:
    for name in EXPECTED_EXPORTS:
        assert hasattr(mvtb, name), f"{name} missing from module globals"
    assert all(not name.startswith("_") for name in mvtb.__all__)


def test_importing_core_types() -> None:
    from mvtb import RunRequest, RunResult

    assert RunRequest is mvtb.RunRequest
    assert RunResult is mvtb.RunResult
