"""Ephemeral k3s sandbox that bootstraps Flux and reports drift."""

__version__ = "0.1.0"
