from __future__ import annotations

import numpy as np
import pytest

from simregress.core.results import RunResultBuilder, SignalSeries, compute_fingerprint


def _builder() -> RunResultBuilder:
    builder = RunResultBuilder("buck.ipes", 0.01, 1e-6)
    builder.add_signal("V", [0.0, 1.0, 2.0], [1.0, 2.0, 3.0])
    builder.add_signal("I", [0.0, 1.0, 2.0], [0.5, 0.25, 0.125])
    return builder


def test_signal_series_copies_inputs() -> None:
    time = np.array([0.0, 1.0])
    values = np.array([3.0, 4.0])
    series = SignalSeries("V", time, values)
    values[0] = 99.0
    assert series.values[0] == 3.0

    view = series.values
    view[1] = -1.0
    assert series.values[1] == 4.0


def test_signal_series_rejects_length_mismatch() -> None:
    with pytest.raises(ValueError, match="same length"):
        SignalSeries("V", [0.0, 1.0], [1.0])


def test_sealed_result_is_a_snapshot() -> None:
    builder = _builder()
    result = builder.seal()
    builder.add_signal("extra", [0.0], [1.0])
    assert result.signal_names() == ("V", "I")
    assert "extra" not in result.signals
    with pytest.raises(TypeError):
        result.signals["X"] = result.signal("V")  # type: ignore[index]


def test_readding_signal_replaces_data_in_place() -> None:
    builder = _builder()
    builder.add_signal("V", [0.0], [7.0])
    result = builder.seal()
    assert result.signal_names() == ("V", "I")
    assert result.signal("V").values.tolist() == [7.0]


def test_fingerprint_is_order_sensitive() -> None:
    first = _builder().seal()
    reordered = RunResultBuilder("buck.ipes", 0.01, 1e-6)
    reordered.add_signal("I", [0.0, 1.0, 2.0], [0.5, 0.25, 0.125])
    reordered.add_signal("V", [0.0, 1.0, 2.0], [1.0, 2.0, 3.0])
    second = reordered.seal()

    assert dict(first.signals) == dict(second.signals)
    assert first.fingerprint != second.fingerprint
    assert first != second


def test_fingerprint_matches_sealed_value() -> None:
    result = _builder().seal()
    assert result.fingerprint == compute_fingerprint(result)
    assert len(result.fingerprint) == 64


def test_equality_tolerates_tiny_nominal_noise() -> None:
    first = _builder().seal()
    builder = RunResultBuilder("buck.ipes", 0.01 + 1e-17, 1e-6)
    builder.add_signal("V", [0.0, 1.0, 2.0], [1.0, 2.0, 3.0])
    builder.add_signal("I", [0.0, 1.0, 2.0], [0.5, 0.25, 0.125])
    second = builder.seal()
    assert first == second
    assert hash(first) == hash(second)


def test_equality_detects_value_change() -> None:
    first = _builder().seal()
    builder = _builder()
    builder.add_signal("I", [0.0, 1.0, 2.0], [0.5, 0.25, 0.126])
    assert first != builder.seal()
