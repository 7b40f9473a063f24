"""Dockwatch: container stats monitoring sidecar."""

__version__ = "0.1.0"
