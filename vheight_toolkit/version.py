#!/usr/bin/env python
u"""
version.py (11/2026)
Gets the version number and project name of vheight_toolkit

Uses the installed distribution metadata and falls back to the
    version.txt file of a source checkout

UPDATE HISTORY:
    Updated 11/2026: fall back to version.txt for source checkouts
    Written 09/2026
"""
import pathlib
import importlib.metadata

# name of the distribution on the package index
PROJECT = "vheight-toolkit"

# PURPOSE: get the version and project name of the distribution
def get_metadata(project: str = PROJECT):
    """
    Get the version number and project name of a distribution

    Parameters
    ----------
    project: str, default 'vheight-toolkit'
        name of the distribution
    """
    try:
        metadata = importlib.metadata.metadata(project)
    except importlib.metadata.PackageNotFoundError:
        # read the version from the root of the source tree
        version_file = pathlib.Path(__file__).parents[1].joinpath('version.txt')
        return (version_file.read_text(encoding='utf8').strip(), project)
    return (metadata["version"], metadata["Name"])

# get version and project name
version, project_name = get_metadata()
# append "v" before the version
full_version = f"v{version}"
