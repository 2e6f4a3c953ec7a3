import numpy as np
import pandas as pd
import pytest

from src.calibration.core import Sample
from src.calibration.errors import RangeError
from src.calibration.sampler import SignalSampler


def make_sampler(n=10, fs=100.0):
    t = np.arange(n) / fs
    values = np.column_stack([np.arange(n), 2 * np.arange(n), np.zeros(n)]).astype(float)
    return SignalSampler(t, values)


def test_window_is_read_only_view():
    sampler = make_sampler()
    window = sampler.window(2, 6)

    assert len(window) == 4
    assert window.start == 2 and window.end == 6
    assert window.duration == pytest.approx(0.03)
    assert sampler.window(4, 5).duration == 0.0
    np.testing.assert_array_equal(window.values[:, 0], [2, 3, 4, 5])
    with pytest.raises(ValueError):
        window.values[0, 0] = 99.0


@pytest.mark.parametrize("start,end", [(3, 3), (5, 2), (-1, 4), (0, 11)])
def test_window_rejects_invalid_bounds(start, end):
    with pytest.raises(RangeError):
        make_sampler().window(start, end)


def test_differences_and_intervals():
    sampler = make_sampler()
    window = sampler.window(0, 5)

    diffs = SignalSampler.differences(window)
    assert diffs.shape == (4, 3)
    np.testing.assert_allclose(diffs, [[1, 2, 0]] * 4)
    np.testing.assert_allclose(SignalSampler.intervals(window), [0.01] * 4)


def test_basic_statistics():
    window = make_sampler().window(0, 4)
    np.testing.assert_allclose(SignalSampler.mean(window), [1.5, 3.0, 0.0])
    np.testing.assert_allclose(SignalSampler.variance(window), [5 / 3, 20 / 3, 0.0])


def test_input_is_copied_and_validated():
    t = np.arange(5, dtype=float)
    values = np.zeros((5, 3))
    sampler = SignalSampler(t, values)
    values[0, 0] = 7.0
    assert sampler.sample(0).x == 0.0

    with pytest.raises(ValueError):
        SignalSampler(t, np.zeros((5, 2)))
    with pytest.raises(ValueError):
        SignalSampler([0.0, 1.0, 1.0], np.zeros((3, 3)))


def test_sample_and_sample_rate():
    sampler = make_sampler()
    assert sampler.sample(3) == Sample(0.03, 3.0, 6.0, 0.0)
    assert sampler.sample_rate == pytest.approx(100.0)
    with pytest.raises(RangeError):
        sampler.sample(10)


def test_window_by_time():
    sampler = make_sampler()
    window = sampler.window_by_time(0.02, 0.05)
    assert (window.start, window.end) == (2, 5)
    with pytest.raises(RangeError):
        sampler.window_by_time(0.05, 0.02)
    with pytest.raises(RangeError):
        sampler.window_by_time(0.0, 1.0)


def test_from_samples_and_dataframe():
    samples = [Sample(0.0, 1.0, 2.0, 3.0), Sample(0.5, 4.0, 5.0, 6.0)]
    from_samples = SignalSampler.from_samples(samples)
    assert from_samples.sample(1) == samples[1]

    df = pd.DataFrame(
        {"timestamp": [0.5, 0.0], "x": [4.0, 1.0], "y": [5.0, 2.0], "z": [6.0, 3.0]}
    )
    from_df = SignalSampler.from_dataframe(df)
    assert from_df.sample(0) == samples[0]

    with pytest.raises(ValueError):
        SignalSampler.from_dataframe(df.drop(columns=["z"]))
