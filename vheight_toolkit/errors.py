#!/usr/bin/env python
u"""
errors.py
Exceptions raised when selecting virtual height bins

UPDATE HISTORY:
    Written 09/2026
"""

class AltitudeGroupError(ValueError):
    """Base class for errors in selecting virtual height bins"""
    pass

class DegenerateRangeError(AltitudeGroupError):
    """
    Virtual height range is too small relative to the bin width
    for a histogram analysis
    """
    pass

class CapacityError(AltitudeGroupError):
    """
    Number of virtual height bins exceeds the maximum allowed

    Parameters
    ----------
    message: str
        description of where the limit was exceeded
    count: int
        number of virtual height bins requested
    limit: int
        maximum number of virtual height bins
    """
    def __init__(self, message: str, count: int, limit: int):
        super().__init__(f'{message} ({count:d} > {limit:d})')
        self.count = count
        self.limit = limit

class FitConvergenceError(RuntimeError):
    """Least-squares fit of the histogram did not converge"""
    pass
