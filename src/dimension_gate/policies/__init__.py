"""Policy loading for initial dimension states and schedule definitions."""

from .dimension_policy import DimensionPolicy, DimensionPolicyLoader, parse_policy

__all__ = ["DimensionPolicy", "DimensionPolicyLoader", "parse_policy"]
