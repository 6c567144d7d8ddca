"""Image preprocessing."""

from .normalize import ImageNormalizer, normalize

__all__ = ["ImageNormalizer", "normalize"]
