"""Metadata for the project."""

from importlib.metadata import PackageNotFoundError, metadata, version

__all__ = ("__project__", "__version__")

try:
    __version__ = version("pgfusion")
    __project__ = metadata("pgfusion")["Name"]
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
    __project__ = "pgfusion"
finally:
    del version, PackageNotFoundError, metadata
