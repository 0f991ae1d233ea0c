"""OpenPID - Driver code generator for device protocol descriptions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("openpid")
except PackageNotFoundError:
    __version__ = "(local)"
