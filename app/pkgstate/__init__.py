"""pkgstate - package resource reconciliation for OS configuration agents."""

__version__ = "0.1.0"
