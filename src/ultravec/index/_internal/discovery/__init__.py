"""File discovery for the vector index."""

from ultravec.index._internal.discovery.scanner import FileScanner

__all__ = ["FileScanner"]
