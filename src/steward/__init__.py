"""Steward - cluster add-on lifecycle management.

Chooses which versioned add-on manifests a cluster should run, detects
drift against what is installed, remaps manifests with cluster identity,
and coordinates node restarts and PKI bootstrap for upgrades.
"""

from importlib.metadata import PackageNotFoundError, version

# Read version from package metadata with fallback
try:
    __version__ = version("steward-addons")
except PackageNotFoundError:
    # Fallback for development/testing environments
    __version__ = "0.1.0"

__all__ = ["__version__"]
