"""convex-useindex: flag Convex queries that scan a table without an index."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("convex-useindex")
except PackageNotFoundError:
    __version__ = "dev"
