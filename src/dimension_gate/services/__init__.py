"""Service layer assembling the core components into a running gate."""

from .gate_service import DimensionGateService

__all__ = ["DimensionGateService"]
