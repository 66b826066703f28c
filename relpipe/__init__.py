"""Release pipeline: build, package and publish draft releases."""

__version__ = "0.1.0"
