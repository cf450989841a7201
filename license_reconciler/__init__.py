"""Reconciler for AWS License Manager license configurations."""

__version__ = "0.1.0"
