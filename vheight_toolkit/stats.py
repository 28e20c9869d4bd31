#!/usr/bin/env python
u"""
stats.py
Statistical utilities for histogram peak detection of virtual heights

PYTHON DEPENDENCIES:
    numpy: Scientific Computing Tools For Python
        https://numpy.org
        https://numpy.org/doc/stable/user/numpy-for-matlab-users.html
    scipy: Scientific Tools for Python
        https://docs.scipy.org/doc/

UPDATE HISTORY:
    Updated 10/2026: peaks must be above the floor of their window
    Written 09/2026
"""
from __future__ import annotations

import numpy as np
import scipy.signal

# PURPOSE: remove invalid values from an array of observations
def finite(values: np.ndarray):
    """
    Reduce an array of observations to its finite values

    Parameters
    ----------
    values: np.ndarray
        input observations
    """
    values = np.asarray(values, dtype=np.float64).flatten()
    return values[np.isfinite(values)]

# PURPOSE: minimum of a set of valid observations
def absmin(values: np.ndarray):
    """
    Minimum of the finite values in an array

    Parameters
    ----------
    values: np.ndarray
        input observations
    """
    valid = finite(values)
    if (valid.size == 0):
        raise ValueError('No valid data points found')
    return np.min(valid)

# PURPOSE: maximum of a set of valid observations
def absmax(values: np.ndarray):
    """
    Maximum of the finite values in an array

    Parameters
    ----------
    values: np.ndarray
        input observations
    """
    valid = finite(values)
    if (valid.size == 0):
        raise ValueError('No valid data points found')
    return np.max(valid)

# PURPOSE: create a histogram of observations with fixed-width bins
def histogram(
        values: np.ndarray,
        nbin: int,
        lower: float,
        upper: float
    ):
    """
    Create a histogram with ``nbin`` equal-width bins spanning
    ``lower`` to ``upper``

    Values outside of the range are excluded from the histogram.
    Values equal to ``upper`` are counted in the final bin.

    Parameters
    ----------
    values: np.ndarray
        input observations
    nbin: int
        number of histogram bins
    lower: float
        lower limit of the histogram
    upper: float
        upper limit of the histogram

    Returns
    -------
    counts: np.ndarray
        number of observations within each bin
    edges: np.ndarray
        left edge of each bin
    """
    if (nbin <= 0):
        raise ValueError(f'Invalid number of histogram bins: {nbin:d}')
    counts, edges = np.histogram(finite(values), bins=nbin,
        range=(lower, upper))
    return (counts, edges[:-1])

# PURPOSE: find the relative maxima of a histogram
def relative_maxima(
        counts: np.ndarray,
        window: int = 2,
        threshold: int | float = 0
    ):
    """
    Find the indices of the relative maxima of a histogram

    A bin is flagged if its count is greater than or equal to all counts
    within ``window`` bins on each side, greater than the smallest count
    within the window and at least ``threshold``

    Parameters
    ----------
    counts: np.ndarray
        histogram counts
    window: int, default 2
        number of bins on each side to use in the comparison
    threshold: int or float, default 0
        minimum count for a significant maximum

    Returns
    -------
    indices: np.ndarray
        indices of the relative maxima
    """
    counts = np.asarray(counts)
    nbin = len(counts)
    if (nbin == 0):
        return np.zeros((0), dtype=int)
    # bins greater than or equal to all neighbors within the window
    ii, = scipy.signal.argrelextrema(counts, np.greater_equal,
        order=window, mode='clip')
    # reduce to bins that rise above their window and are significant
    valid = []
    for i in ii:
        w = counts[max(i-window, 0):min(i+window+1, nbin)]
        if (counts[i] > np.min(w)) and (counts[i] >= threshold):
            valid.append(i)
    return np.array(valid, dtype=int)

# PURPOSE: find the index of the largest histogram bin
def absolute_max_index(counts: np.ndarray):
    """
    Index of the largest count (first occurrence for ties)

    Parameters
    ----------
    counts: np.ndarray
        histogram counts
    """
    return int(np.argmax(counts))

# PURPOSE: stable sort of an array of values
def argsort(values: np.ndarray):
    """
    Indices that sort an array in ascending order, keeping the input
    order of equal values

    Parameters
    ----------
    values: np.ndarray
        values to sort
    """
    return np.argsort(np.asarray(values), kind='stable')
