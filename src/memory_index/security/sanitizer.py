"""
Security Sanitizer

Cleans synthesized text and names before they are written to the vault:
- Strips script and HTML tags and control characters
- Produces file names that cannot escape the vault directory
- Applies owner-only permissions to exported files
"""

import html
import os
import re
from pathlib import Path


class Sanitizer:
    """
    Sanitizes collaborator-generated text before it reaches Markdown files.

    Synthesized documents are model output, so they are treated as
    untrusted input.
    """

    SCRIPT_PATTERN = re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL)
    HTML_TAG_PATTERN = re.compile(r'</?[A-Za-z][^>]*>')
    CONTROL_CHARS_PATTERN = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
    PATH_TRAVERSAL_PATTERN = re.compile(r'\.\./')
    # Characters rejected by common filesystems
    UNSAFE_FILENAME_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

    MAX_TEXT_LENGTH = 20000
    MAX_FILENAME_LENGTH = 120

    def sanitize(self, text: str) -> str:
        """
        Sanitize text for safe Markdown storage.

        Args:
            text: Raw text

        Returns:
            Text without markup injection, control characters or
            traversal sequences, truncated to ``MAX_TEXT_LENGTH``
        """
        if not text:
            return ""

        text = self.SCRIPT_PATTERN.sub('', text)
        text = self.HTML_TAG_PATTERN.sub('', text)

        # Keep &, < and > readable for prose and comparisons
        text = html.escape(text, quote=False)
        text = text.replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')

        text = self.CONTROL_CHARS_PATTERN.sub('', text)
        text = self.PATH_TRAVERSAL_PATTERN.sub('', text)

        if len(text) > self.MAX_TEXT_LENGTH:
            text = text[:self.MAX_TEXT_LENGTH] + "... [truncated]"

        return text.strip()

    def sanitize_filename(self, name: str) -> str:
        """
        Turn a title into a single safe path component.

        ``"Hobbies & Passions"`` is kept as is; separators and reserved
        characters become dashes, and leading dots are removed.
        """
        name = self.UNSAFE_FILENAME_PATTERN.sub('-', name or '')
        name = re.sub(r'\s+', ' ', name).strip().lstrip('.')
        name = name[:self.MAX_FILENAME_LENGTH].rstrip()
        return name or "untitled"

    @staticmethod
    def set_secure_permissions(path: Path) -> None:
        """Owner-only permissions (700 for directories, 600 for files)."""
        if path.is_dir():
            os.chmod(path, 0o700)
        else:
            os.chmod(path, 0o600)
