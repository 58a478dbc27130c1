from __future__ import annotations

from h5phub.hub.models import CoreApiVersion
from h5phub.sync.filters import is_core_api_compatible, is_restricted


class _RestrictionStub:
    def __init__(self, flags=None, error: Exception | None = None) -> None:
        self.flags = flags or {}
        self.error = error
        self.calls: list[tuple[str, int, int]] = []

    def is_restricted(self, machine_name, major, minor):
        self.calls.append((machine_name, major, minor))
        if self.error is not None:
            raise self.error
        return self.flags.get((machine_name, major, minor))


def _core(major: int, minor: int) -> CoreApiVersion:
    return CoreApiVersion(major=major, minor=minor)


def test_core_api_absent_requirement_is_compatible():
    assert is_core_api_compatible(None, _core(0, 0)) is True
    assert is_core_api_compatible(None, _core(9, 9)) is True


def test_core_api_requirement_examples():
    assert is_core_api_compatible(_core(1, 5), _core(1, 4)) is False
    assert is_core_api_compatible(_core(1, 5), _core(1, 5)) is True
    assert is_core_api_compatible(_core(1, 5), _core(2, 0)) is True
    assert is_core_api_compatible(_core(2, 0), _core(1, 99)) is False


def test_restriction_flag_is_honoured():
    registry = _RestrictionStub({("H5P.Example", 1, 2): True, ("H5P.Other", 1, 0): False})
    assert is_restricted(registry, "H5P.Example", 1, 2) is True
    assert is_restricted(registry, "H5P.Other", 1, 0) is False


def test_restriction_fails_open():
    assert is_restricted(_RestrictionStub(), "H5P.Example", 1, 2) is False
    broken = _RestrictionStub(error=RuntimeError("database gone"))
    assert is_restricted(broken, "H5P.Example", 1, 2) is False


def test_restriction_with_missing_arguments_skips_lookup():
    registry = _RestrictionStub({("H5P.Example", 1, 2): True})
    assert is_restricted(registry, "H5P.Example", None, 2) is False
    assert registry.calls == []
