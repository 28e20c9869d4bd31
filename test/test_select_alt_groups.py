#!/usr/bin/env python
u"""
test_select_alt_groups.py (11/2026)
Verify selection of virtual height bins from histogram fits

UPDATE HISTORY:
    Updated 11/2026: require three gaussian groups for distinct clusters
        add capacity test for accepted histogram fits
    Updated 10/2026: add tests for fallback bins and input permutations
    Written 09/2026
"""
import logging
import pytest
import numpy as np
import vheight_toolkit as vhtk

# virtual heights with three distinct groups
CLUSTERS = np.array([100, 100, 101, 102, 150, 151, 149, 150, 200, 201, 199],
    dtype=np.float64)
# options for the three groups
OPTIONS = dict(vh_min=50.0, vh_max=250.0, vh_box=30.0, min_pnts=2,
    max_vbin=10)

# PURPOSE: index of the bin containing a virtual height
def locate(bins, height):
    for i, b in enumerate(bins):
        if (b.lower <= height) and (height < b.upper):
            return i
    if (height == bins[-1].upper):
        return len(bins) - 1
    return None

# PURPOSE: check that bins cover a range without gaps or overlaps
def assert_coverage(bins, lower, upper, max_vbin):
    assert 0 < len(bins) <= max_vbin
    assert bins[0].lower == lower
    assert bins[-1].upper == upper
    for b in bins:
        assert b.lower < b.upper
        assert b.contains(b.peak)
    for b1, b2 in zip(bins[:-1], bins[1:]):
        assert b1.upper == b2.lower
        assert b1.lower < b2.lower

# PURPOSE: significant peaks of a histogram
def test_histogram_peaks():
    counts = np.array([0, 0, 4, 0, 1, 3, 0, 3, 0, 0])
    assert vhtk.groups.histogram_peaks(counts, 2) == [2, 5, 7]
    assert vhtk.groups.histogram_peaks(counts, 4) == [2]
    assert vhtk.groups.histogram_peaks(counts, 5) == []
    # absolute maximum of a plateau is added if significant
    flat = np.full((10), 3)
    assert vhtk.groups.histogram_peaks(flat, 2) == [0]
    assert vhtk.groups.histogram_peaks(flat, 4) == []

# PURPOSE: number of histogram bins for a virtual height range
def test_histogram_bins():
    assert vhtk.groups.histogram_bins(50.0, 250.0, 30.0) == 10
    assert vhtk.groups.histogram_bins(50.0, 80.0, 30.0) == 4
    with pytest.raises(vhtk.errors.DegenerateRangeError):
        vhtk.groups.histogram_bins(100.0, 101.0, 30.0)
    with pytest.raises(vhtk.errors.DegenerateRangeError):
        vhtk.groups.histogram_bins(50.0, 250.0, 0.0)

# PURPOSE: three distinct groups of virtual heights
def test_three_groups():
    groups = vhtk.select_alt_groups(CLUSTERS, **OPTIONS)
    assert groups.method == 'gaussian'
    assert groups.npeaks == 3
    assert_coverage(groups.bins, 100.0, 201.0, OPTIONS['max_vbin'])
    # each group is separated from its neighbors
    i1, i2, i3 = [locate(groups.bins, h) for h in (100.0, 150.0, 200.0)]
    assert i1 < i2 < i3
    assert locate(groups.bins, 201.0) == i3
    # output arrays
    assert len(groups.vh_mins) == groups.npeaks
    np.testing.assert_array_equal(groups.vh_mins[1:], groups.vh_maxs[:-1])
    assert np.all(groups.vh_peaks >= groups.vh_mins)

# PURPOSE: selected bins do not depend on the order of the inputs
def test_permutation():
    groups = vhtk.select_alt_groups(CLUSTERS, **OPTIONS)
    rng = np.random.default_rng(seed=2026)
    for _ in range(3):
        permuted = vhtk.select_alt_groups(rng.permutation(CLUSTERS),
            **OPTIONS)
        assert permuted.method == groups.method
        np.testing.assert_array_equal(permuted.vh_mins, groups.vh_mins)
        np.testing.assert_array_equal(permuted.vh_maxs, groups.vh_maxs)

# PURPOSE: virtual heights without any significant peaks
def test_uniform(caplog):
    caplog.set_level(logging.INFO)
    vh = np.arange(60.0, 241.0, 20.0)
    groups = vhtk.select_alt_groups(vh, vh_min=50.0, vh_max=250.0,
        vh_box=40.0, min_pnts=2, max_vbin=10)
    assert groups.method == 'uniform'
    assert groups.npeaks == int(np.ceil((240.0 - 60.0)/40.0))
    assert_coverage(groups.bins, 60.0, 240.0, 10)
    np.testing.assert_allclose(groups.vh_mins, [60.0, 96.0, 136.0, 176.0, 216.0])
    assert all(b.width <= 40.0 for b in groups.bins)
    assert 'No significant virtual height peaks found' in caplog.text

# PURPOSE: too many bins with no significant peaks
def test_uniform_capacity():
    vh = np.arange(60.0, 241.0, 20.0)
    with pytest.raises(vhtk.errors.CapacityError):
        vhtk.select_alt_groups(vh, vh_min=50.0, vh_max=250.0,
            vh_box=40.0, min_pnts=2, max_vbin=3)

# PURPOSE: histogram fit that could not be used
def failed_fit(x, hist, priors, **kwargs):
    return vhtk.fit._failed_fit('no usable parameters', len(x) - 3*len(priors))

# PURPOSE: failed histogram fits use the suggested width
def test_fallback(monkeypatch, caplog):
    caplog.set_level(logging.INFO)
    monkeypatch.setattr(vhtk.groups, 'fit_histogram', failed_fit)
    groups = vhtk.select_alt_groups(CLUSTERS, **OPTIONS)
    assert groups.method == 'fallback'
    assert groups.npeaks == 4
    np.testing.assert_allclose(groups.vh_mins, [100.0, 125.25, 155.25, 185.25])
    np.testing.assert_allclose(groups.vh_maxs, [125.25, 155.25, 185.25, 201.0])
    assert_coverage(groups.bins, 100.0, 201.0, OPTIONS['max_vbin'])
    assert 'No valid histogram fits' in caplog.text

# PURPOSE: failed histogram fits with too many bins
def test_fallback_capacity(monkeypatch):
    monkeypatch.setattr(vhtk.groups, 'fit_histogram', failed_fit)
    options = dict(OPTIONS, max_vbin=3)
    with pytest.raises(vhtk.errors.CapacityError):
        vhtk.select_alt_groups(CLUSTERS, **options)

# PURPOSE: accepted histogram fits with too many bins
def test_fit_capacity():
    options = dict(OPTIONS, max_vbin=1)
    with pytest.raises(vhtk.errors.CapacityError) as exc_info:
        vhtk.select_alt_groups(CLUSTERS, **options)
    assert exc_info.value.count == 2
    assert exc_info.value.limit == 1

# PURPOSE: a plateau of virtual heights fits the absolute maximum
def test_plateau():
    vh = np.repeat(np.arange(60.0, 241.0, 20.0), 3)
    groups = vhtk.select_alt_groups(vh, vh_min=50.0, vh_max=250.0,
        vh_box=40.0, min_pnts=2, max_vbin=10)
    assert groups.method in ('gaussian', 'fallback')
    assert_coverage(groups.bins, 60.0, 240.0, 10)

# PURPOSE: virtual height range too small for a histogram analysis
def test_degenerate_range():
    with pytest.raises(vhtk.errors.DegenerateRangeError):
        vhtk.select_alt_groups(np.array([100.2, 100.5, 100.7]),
            vh_min=100.0, vh_max=101.0, vh_box=30.0)
    # degenerate ranges are value errors
    with pytest.raises(ValueError):
        vhtk.select_alt_groups(np.array([100.5]),
            vh_min=100.0, vh_max=101.0, vh_box=30.0)

# PURPOSE: invalid inputs
def test_invalid_inputs():
    with pytest.raises(ValueError):
        vhtk.select_alt_groups(np.array([np.nan, np.inf]), **OPTIONS)
    with pytest.raises(vhtk.errors.DegenerateRangeError):
        vhtk.select_alt_groups(CLUSTERS, **dict(OPTIONS, max_vbin=0))

# PURPOSE: virtual heights outside of the allowable range are restricted
def test_allowable_range():
    vh = np.concatenate([CLUSTERS, [20.0, 300.0]])
    groups = vhtk.select_alt_groups(vh, **OPTIONS)
    assert_coverage(groups.bins, 50.0, 250.0, OPTIONS['max_vbin'])

# PURPOSE: a single virtual height
def test_single_height():
    groups = vhtk.select_alt_groups(np.array([150.0]), **OPTIONS)
    assert groups.method == 'uniform'
    assert groups.npeaks == 1
    assert groups.bins[0].lower == groups.bins[0].upper == 150.0
