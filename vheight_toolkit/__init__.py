"""
A virtual height toolkit for Python
===================================

vheight_toolkit contains Python tools for selecting groups of virtual
heights from radar backscatter for field-of-view classification

The package works using Python packages (numpy, scipy) to build
histograms of virtual heights, fit Gaussian functions to the occurrence
peaks and set non-overlapping virtual height bins

It aims to be a simple and efficient solution for separating radar
backscatter by altitude regime before assigning a field-of-view
"""
import vheight_toolkit.errors
import vheight_toolkit.fit
import vheight_toolkit.groups
import vheight_toolkit.stats
import vheight_toolkit.version
from vheight_toolkit.groups import (
    AltitudeBin,
    AltitudeGroups,
    select_alt_groups,
    sort_expand_boundaries
)

# get version number
__version__ = vheight_toolkit.version.version
