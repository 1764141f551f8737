"""Directory discovery feeding the library's folder import."""

from .discovery import DirectoryScanner

__all__ = ["DirectoryScanner"]
