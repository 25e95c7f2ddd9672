"""Pixel sample extraction."""

from .pixels import ExtractionResult, extract

__all__ = ["ExtractionResult", "extract"]
