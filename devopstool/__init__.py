"""Inspect and clean up storage resources of a Kubernetes cluster."""

__version__ = "1.0.0"