"""Reconciliation core: validation, installed-package caches, drift checks and enforcement."""
