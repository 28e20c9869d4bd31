#!/usr/bin/env python
u"""
groups.py
Select virtual height bins for groups of radar backscatter by fitting
    Gaussian functions to the occurrence peaks of a virtual height histogram

Bins are derived from the 3-sigma limits of each fit Gaussian and then
    sorted and expanded to remove any overlaps or gaps so that the full
    range of observed virtual heights is covered

PYTHON DEPENDENCIES:
    numpy: Scientific Computing Tools For Python
        https://numpy.org
        https://numpy.org/doc/stable/user/numpy-for-matlab-users.html
    scipy: Scientific Tools for Python
        https://docs.scipy.org/doc/

PROGRAM DEPENDENCIES:
    stats.py: statistical utilities for histogram peak detection
    fit.py: utilities for fitting Gaussian decompositions to histograms

UPDATE HISTORY:
    Updated 11/2026: use histogram fits that reach the evaluation limit
        trimmed candidates are replaced with filler bins
    Updated 10/2026: use explicit priorities for original and filler bins
        add the absolute maximum using the index of the largest bin
        clip output bins to the observed range of virtual heights
    Updated 09/2026: raise exceptions rather than exiting
    Written 09/2026
"""
from __future__ import annotations

import enum
import typing
import logging
import dataclasses
import numpy as np
import vheight_toolkit.stats
from vheight_toolkit.fit import FitConfig, fit_histogram
from vheight_toolkit.errors import DegenerateRangeError, CapacityError

# maximum number of histogram bins
MAX_HIST_BINS = 10

class BinKind(enum.IntEnum):
    """Origin of a virtual height bin"""
    ORIGINAL = 0
    FILLER = 1

class Priority(typing.NamedTuple):
    """
    Priority for keeping a virtual height bin when resolving overlaps

    Lower values have a higher priority to be kept: all original
    bins take precedence over filler bins
    """
    kind: BinKind
    rank: int

@dataclasses.dataclass
class AltitudeBin:
    """
    Virtual height bin

    Parameters
    ----------
    lower: float
        lower limit of the bin in km
    upper: float
        upper limit of the bin in km
    peak: float
        representative peak height of the bin in km
    amplitude: float, default np.nan
        amplitude of the fit Gaussian for the bin
    priority: Priority or NoneType, default None
        priority used when reconciling boundaries
    """
    lower: float
    upper: float
    peak: float
    amplitude: float = np.nan
    priority: Priority | None = None

    @property
    def width(self):
        """Width of the bin in km"""
        return self.upper - self.lower

    def contains(self, height: float):
        """Check if a height is within the bin"""
        return (self.lower <= height) and (height <= self.upper)

    def clamp_peak(self):
        """Restrict the representative peak height to within the bin"""
        self.peak = min(max(self.peak, self.lower), self.upper)
        return self

class AltitudeGroups(typing.NamedTuple):
    """
    Selected virtual height bins

    Parameters
    ----------
    bins: list
        sorted ``AltitudeBin`` objects
    method: str
        method used to set the bins

            - ``'gaussian'``: reconciled Gaussian fits
            - ``'uniform'``: uniform widths with no significant peaks
            - ``'fallback'``: uniform widths with no valid Gaussian fits
    """
    bins: list
    method: str

    @property
    def npeaks(self):
        """Number of virtual height bins"""
        return len(self.bins)

    @property
    def vh_mins(self):
        """Lower limit of each virtual height bin"""
        return np.array([b.lower for b in self.bins], dtype=np.float64)

    @property
    def vh_maxs(self):
        """Upper limit of each virtual height bin"""
        return np.array([b.upper for b in self.bins], dtype=np.float64)

    @property
    def vh_peaks(self):
        """Peak height of each virtual height bin"""
        return np.array([b.peak for b in self.bins], dtype=np.float64)

class _Boundaries:
    """
    Ordered list of virtual height bins limited to a maximum size

    Parameters
    ----------
    max_vbin: int
        maximum number of virtual height bins
    """
    def __init__(self, max_vbin: int):
        self.bins = []
        self.max_vbin = max_vbin
        # number of filler bins created
        self.n_fill = 0

    def __len__(self):
        return len(self.bins)

    def __getitem__(self, i):
        return self.bins[i]

    def append(self, b: AltitudeBin):
        """Add a bin checking that the maximum is not exceeded"""
        if (len(self.bins) + 1) > self.max_vbin:
            raise CapacityError('exceeded new virtual height boundary limits',
                len(self.bins) + 1, self.max_vbin)
        self.bins.append(b)

    def pop(self):
        return self.bins.pop()

    def fill(self, lower: float, upper: float, vnum: int):
        """
        Add evenly spaced filler bins between two limits

        Parameters
        ----------
        lower: float
            lower limit of the first filler bin
        upper: float
            upper limit of the last filler bin
        vnum: int
            number of filler bins
        """
        vspan = (upper - lower)/float(vnum)
        for i in range(vnum):
            hmin = lower + i*vspan
            # end exactly at the upper limit
            hmax = upper if (i == (vnum - 1)) else (lower + (i + 1)*vspan)
            self.append(AltitudeBin(hmin, hmax, hmin + 0.5*(hmax - hmin),
                priority=self.filler_priority()))

    def filler_priority(self):
        """Priority for the next filler bin"""
        priority = Priority(BinKind.FILLER, self.n_fill)
        self.n_fill += 1
        return priority

# PURPOSE: number of histogram bins for a virtual height range
def histogram_bins(vh_min: float, vh_max: float, vh_box: float):
    """
    Get the number of histogram bins for analyzing a virtual height range

    Parameters
    ----------
    vh_min: float
        minimum allowable virtual height in km
    vh_max: float
        maximum allowable virtual height in km
    vh_box: float
        width of virtual height bin in km
    """
    if (vh_box <= 0):
        raise DegenerateRangeError(f'Invalid virtual height width: {vh_box}')
    nbin = int((vh_max - vh_min)/(0.25*vh_box))
    nbin = min(nbin, MAX_HIST_BINS)
    if (nbin <= 0):
        raise DegenerateRangeError('vheight range too small for a histogram '
            f'analysis: {nbin:d} = ({vh_max} - {vh_min}) / {0.25*vh_box}')
    return nbin

# PURPOSE: find the significant peaks of a virtual height histogram
def histogram_peaks(hist_bins: np.ndarray, min_pnts: int, window: int = 2):
    """
    Find the indices of the significant peaks of a histogram

    Parameters
    ----------
    hist_bins: np.ndarray
        histogram counts
    min_pnts: int
        minimum number of points for a significant peak
    window: int, default 2
        number of histogram bins on each side for finding relative maxima
    """
    ismax = set(vheight_toolkit.stats.relative_maxima(hist_bins,
        window=window, threshold=min_pnts).tolist())
    # relative maxima will not be found for plateaus
    # add the absolute maximum if it is significant and absent
    i = vheight_toolkit.stats.absolute_max_index(hist_bins)
    if (i not in ismax) and (hist_bins[i] >= min_pnts):
        ismax.add(i)
    return sorted(ismax)

# PURPOSE: number of uniform-width bins spanning the observed heights
def _uniform_count(local_min: float, local_max: float, vh_box: float):
    return max(1, int(np.ceil((local_max - local_min)/vh_box)))

# PURPOSE: set bins of uniform width when there are no significant peaks
def uniform_partition(
        local_min: float,
        local_max: float,
        vh_box: float,
        max_vbin: int
    ):
    """
    Set virtual height bins of uniform width across the observed
    virtual heights

    Parameters
    ----------
    local_min: float
        minimum observed virtual height in km
    local_max: float
        maximum observed virtual height in km
    vh_box: float
        width of virtual height bin in km
    max_vbin: int
        maximum number of virtual height bins
    """
    npeaks = _uniform_count(local_min, local_max, vh_box)
    if (npeaks > max_vbin):
        raise CapacityError('suggested width created too many vheight bins',
            npeaks, max_vbin)
    vmin = (local_max - local_min)/float(npeaks) + local_min - vh_box
    bins = []
    for i in range(npeaks):
        lower = vmin + i*vh_box
        upper = vmin + (i + 1)*vh_box
        bins.append(AltitudeBin(lower, upper, lower + 0.5*(upper - lower)))
    return bins

# PURPOSE: set bins of uniform width when no fit peaks were accepted
def fallback_partition(
        local_min: float,
        local_max: float,
        vh_min: float,
        vh_max: float,
        vh_box: float,
        max_vbin: int
    ):
    """
    Set virtual height bins of uniform width starting from the observed
    virtual heights, stopping if the maximum allowable height is reached

    Parameters
    ----------
    local_min: float
        minimum observed virtual height in km
    local_max: float
        maximum observed virtual height in km
    vh_min: float
        minimum allowable virtual height in km
    vh_max: float
        maximum allowable virtual height in km
    vh_box: float
        width of virtual height bin in km
    max_vbin: int
        maximum number of virtual height bins
    """
    npeaks = _uniform_count(local_min, local_max, vh_box)
    if (npeaks > max_vbin):
        raise CapacityError('suggested width created too many vheight bins',
            npeaks, max_vbin)
    # first set of boundary limits
    lower = (local_max - local_min)/float(npeaks) + local_min - vh_box
    lower = max(lower, vh_min)
    bins = []
    for i in range(npeaks):
        if bins and (bins[-1].upper >= vh_max):
            break
        if bins:
            lower = bins[-1].upper
        upper = min(lower + vh_box, vh_max)
        bins.append(AltitudeBin(lower, upper, lower + 0.5*(upper - lower)))
    return bins

# PURPOSE: sort the virtual height limits, eliminating overlaps and gaps
def sort_expand_boundaries(
        candidates: list,
        local_min: float,
        local_max: float,
        vh_min: float,
        vh_max: float,
        vh_box: float,
        max_vbin: int
    ):
    """
    Sort the virtual height limits, eliminating overlaps and gaps

    Parameters
    ----------
    candidates: list
        ``AltitudeBin`` objects for each candidate virtual height bin
    local_min: float
        minimum observed virtual height in km
    local_max: float
        maximum observed virtual height in km
    vh_min: float
        minimum allowable virtual height in km
    vh_max: float
        maximum allowable virtual height in km
    vh_box: float
        width of virtual height bin in km
    max_vbin: int
        maximum number of virtual height bins

    Returns
    -------
    bins: list
        sorted ``AltitudeBin`` objects without overlaps or gaps
    """
    if (len(candidates) == 0):
        return []
    # observed range within the allowable limits
    hlow = max(local_min, vh_min)
    hhigh = min(local_max, vh_max)
    # copy the candidates with a priority from their input order
    # low priority values indicate a higher priority to keep the bin
    local = [dataclasses.replace(b, priority=Priority(BinKind.ORIGINAL, i))
        for i, b in enumerate(candidates)]
    # remove bins without a sensible width
    local = [b for b in local if (b.lower < b.upper)]
    sortargs = vheight_toolkit.stats.argsort([b.lower for b in local])
    local = [local[i] for i in sortargs]
    output = _Boundaries(max_vbin)

    # if there are points below the lowest limit, add more regions
    if local and (local[0].lower > hlow):
        vnum = int((local[0].lower - hlow)/vh_box)
        if (vnum == 0):
            # outlying points are close enough to extend the lower limit
            local[0].lower = hlow
        else:
            output.fill(hlow, local[0].lower, vnum)

    # add the candidate limits to the output bins
    for b in local:
        if (len(output) == 0):
            output.append(b)
            continue
        last = output[-1]
        if (last.upper >= b.peak) or (b.lower <= last.peak):
            # significant overlap between the two regions
            if (last.priority < b.priority):
                # keep the previous bin and replace the candidate
                # with a filler bin for its remaining extent
                if (b.upper > last.upper):
                    output.append(AltitudeBin(last.upper, b.upper,
                        last.upper + 0.5*(b.upper - last.upper),
                        amplitude=b.amplitude,
                        priority=output.filler_priority()))
            else:
                # remove bins that start at or above the candidate
                while (len(output) > 0) and (output[-1].lower >= b.lower):
                    output.pop()
                # set the maximum of the previous bin to remove the overlap
                if (len(output) > 0):
                    output[-1].upper = b.lower
                    output[-1].clamp_peak()
                output.append(b)
        elif (last.upper < b.lower):
            # bridge the gap between the two bins
            vnum = int((b.lower - last.upper)/vh_box)
            if (vnum == 0):
                last.upper = b.lower
            else:
                output.fill(last.upper, b.lower, vnum)
            output.append(b)
        elif (b.upper > last.upper):
            # minor overlap: start the candidate at the previous limit
            b.lower = last.upper
            output.append(b.clamp_peak())

    # if there are points above the highest limit, add more regions
    if (len(output) == 0):
        vnum = max(1, int((hhigh - hlow)/vh_box))
        if (hhigh > hlow):
            output.fill(hlow, hhigh, vnum)
    elif (output[-1].upper < hhigh):
        vnum = int((hhigh - output[-1].upper)/vh_box)
        if (vnum == 0):
            # outlying points are close enough to extend the upper limit
            output[-1].upper = hhigh
        else:
            output.fill(output[-1].upper, hhigh, vnum)
    return list(output.bins)

# PURPOSE: restrict bins to the observed range of virtual heights
def clip_boundaries(
        bins: list,
        local_min: float,
        local_max: float,
        vh_min: float,
        vh_max: float
    ):
    """
    Restrict virtual height bins to the observed virtual heights within
    the allowable limits, removing bins without any width

    Parameters
    ----------
    bins: list
        sorted ``AltitudeBin`` objects
    local_min: float
        minimum observed virtual height in km
    local_max: float
        maximum observed virtual height in km
    vh_min: float
        minimum allowable virtual height in km
    vh_max: float
        maximum allowable virtual height in km
    """
    hlow = max(local_min, vh_min)
    hhigh = min(local_max, vh_max)
    if (hlow > hhigh):
        return []
    if (hlow == hhigh):
        # single observed height
        for b in bins:
            if b.contains(hlow):
                return [dataclasses.replace(b, lower=hlow, upper=hhigh,
                    peak=hlow)]
        return [AltitudeBin(hlow, hhigh, hlow)]
    clipped = []
    for b in bins:
        lower = max(b.lower, hlow)
        upper = min(b.upper, hhigh)
        if (lower < upper):
            c = dataclasses.replace(b, lower=lower, upper=upper)
            clipped.append(c.clamp_peak())
    return clipped

# PURPOSE: get the virtual height limits for a select group of data
def select_alt_groups(
        vh: np.ndarray,
        vh_min: float = 0.0,
        vh_max: float = 900.0,
        vh_box: float = 150.0,
        min_pnts: int = 3,
        max_vbin: int = 10,
        MAXFEV: int = 1600,
        MAXITER: int = 200,
        WINDOW: int = 2
    ):
    """
    Get the virtual height limits for a select group of data using the
    distribution of the data and fitting Gaussian functions to the
    occurrence peaks

    Parameters
    ----------
    vh: np.ndarray
        virtual height of each observation in km
    vh_min: float, default 0.0
        minimum allowable virtual height in km
    vh_max: float, default 900.0
        maximum allowable virtual height in km
    vh_box: float, default 150.0
        width of virtual height bin in km
    min_pnts: int, default 3
        minimum number of points for a significant peak
    max_vbin: int, default 10
        maximum number of virtual height bins
    MAXFEV: int, default 1600
        maximum number of function evaluations in the fit
    MAXITER: int, default 200
        maximum number of iterations in the fit
    WINDOW: int, default 2
        number of histogram bins on each side for finding relative maxima

    Returns
    -------
    groups: AltitudeGroups
        sorted virtual height bins and the method used to set them

    Raises
    ------
    DegenerateRangeError
        virtual height range is too small for a histogram analysis
    CapacityError
        number of virtual height bins exceeds ``max_vbin``
    """
    if (max_vbin < 1):
        raise DegenerateRangeError(f'Invalid maximum number of bins: {max_vbin}')
    # create a histogram of the number of observations at each virtual height
    nbin = histogram_bins(vh_min, vh_max, vh_box)
    valid = vheight_toolkit.stats.finite(vh)
    if (valid.size == 0):
        raise ValueError('No valid data points found')
    hist_bins, hist_edges = vheight_toolkit.stats.histogram(valid, nbin,
        vh_min, vh_max)
    logging.debug(f'Histogram of {valid.size:d} virtual heights '
        f'with {nbin:d} bins')

    # find the maxima in the histogram
    argmax = histogram_peaks(hist_bins, min_pnts, window=WINDOW)

    # get the maximum and minimum of the virtual heights
    local_min = vheight_toolkit.stats.absmin(valid)
    local_max = vheight_toolkit.stats.absmax(valid)

    # without a significant maximum: set limits using the suggested width
    if (len(argmax) == 0):
        logging.info('No significant virtual height peaks found')
        bins = uniform_partition(local_min, local_max, vh_box, max_vbin)
        bins = clip_boundaries(bins, local_min, local_max, vh_min, vh_max)
        return AltitudeGroups(bins, 'uniform')

    # center of each histogram bin
    hist_width = 0.5*(vh_max - vh_min)/float(nbin)
    x = hist_edges + hist_width
    # initial amplitude, center and width for each peak
    priors = [[hist_bins[j], x[j], 0.5*vh_box] for j in argmax]
    config = FitConfig(maxfev=MAXFEV, maxiter=MAXITER)
    # use non-linear least-squares to fit gaussians to the histogram
    fit = fit_histogram(x, hist_bins, priors, config=config)
    logging.info(f'Histogram fit with {len(argmax):d} peaks: '
        f'{"converged" if fit["converged"] else "not converged"} '
        f'after {fit["nfev"]:d} evaluations')

    candidates = []
    if fit['status']:
        for amp, height, stdev in zip(fit['amplitude'], fit['height'],
                fit['stdev']):
            if not np.all(np.isfinite([amp, height, stdev])):
                continue
            # get the 3-sigma limits
            vmin = max(height - 3.0*stdev, vh_min)
            vmax = min(height + 3.0*stdev, vh_max)
            # get the 2-sigma limits
            vlow = max(height - 2.0*stdev, vh_min)
            vhigh = min(height + 2.0*stdev, vh_max)
            # save the 3-sigma limits if the peak is within the 2-sigma limits
            if (height >= vlow) and (height <= vhigh):
                if (len(candidates) + 1) > max_vbin:
                    raise CapacityError('histogram fits created too many '
                        'vheight bins', len(candidates) + 1, max_vbin)
                candidates.append(AltitudeBin(float(vmin), float(vmax),
                    float(height), amplitude=float(amp)))

    # use the suggested width to set limits if no peaks were accepted
    if (len(candidates) == 0):
        logging.info('No valid histogram fits: using suggested width')
        bins = fallback_partition(local_min, local_max, vh_min, vh_max,
            vh_box, max_vbin)
        bins = clip_boundaries(bins, local_min, local_max, vh_min, vh_max)
        return AltitudeGroups(bins, 'fallback')

    # sort the virtual height limits, eliminating overlaps and gaps
    bins = sort_expand_boundaries(candidates, local_min, local_max,
        vh_min, vh_max, vh_box, max_vbin)
    bins = clip_boundaries(bins, local_min, local_max, vh_min, vh_max)
    logging.debug(f'{len(bins):d} virtual height bins from '
        f'{len(candidates):d} histogram fits')
    return AltitudeGroups(bins, 'gaussian')
