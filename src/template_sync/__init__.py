"""Local/remote reconciliation for cached template bundles."""

__version__ = "0.3.0"
