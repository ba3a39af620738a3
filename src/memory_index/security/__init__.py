"""Security package - Sanitization of exported document text and file names."""

from memory_index.security.sanitizer import Sanitizer

__all__ = ["Sanitizer"]
