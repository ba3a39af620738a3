"""
Markdown Vault

Exports index documents as Markdown files, one file per document:

    ~/.memory_index/
    └── vault/
        └── <user_id>/
            ├── A - Identity & Core Self/
            │   ├── A001 - Core Values.md
            │   └── ...
            └── C - Career & Professional/
"""

import logging
import os
from pathlib import Path
from typing import Optional

import aiofiles

from memory_index.models.index_document import DocumentStatus, IndexDocument
from memory_index.security.sanitizer import Sanitizer
from memory_index.taxonomy.categories import get_category_by_code, get_domain_name
from memory_index.vault.base import DocumentSyncService, SyncResult

logger = logging.getLogger("memory_index.vault")


class MarkdownVault(DocumentSyncService):
    """
    File-system sync target for index documents.

    Re-exporting a document overwrites its file, so the vault always
    mirrors the latest stored version.
    """

    def __init__(self, base_path: Optional[str] = None):
        """
        Args:
            base_path: Vault root. Defaults to ~/.memory_index
        """
        self.base_path = Path(base_path or os.path.expanduser("~/.memory_index"))
        self.vault_path = self.base_path / "vault"
        self.sanitizer = Sanitizer()

    async def initialize(self) -> None:
        """Create the vault root with owner-only permissions."""
        self.vault_path.mkdir(parents=True, exist_ok=True)
        self.sanitizer.set_secure_permissions(self.vault_path)

    def document_path(self, document: IndexDocument) -> Path:
        """Location of a document's file inside the vault."""
        category = get_category_by_code(document.index_code)
        domain = document.domain or document.index_code[0]
        topic = category.topic_name if category else document.title

        folder = self.sanitizer.sanitize_filename(f"{domain} - {get_domain_name(domain)}")
        filename = self.sanitizer.sanitize_filename(f"{document.index_code} - {topic}") + ".md"
        user_dir = self.sanitizer.sanitize_filename(document.user_id)
        return self.vault_path / user_dir / folder / filename

    def render(self, document: IndexDocument) -> str:
        """Markdown representation of a document."""
        clean = self.sanitizer.sanitize
        category = get_category_by_code(document.index_code)
        domain = document.domain or document.index_code[0]
        topic = category.topic_name if category else document.title

        lines = [
            f"# {clean(document.title)}",
            "",
            f"**Index:** {document.index_code} | {get_domain_name(domain)} > {topic}",
            f"**Last Updated:** {document.updated_at.strftime('%B %d, %Y')}",
            f"**Confidence:** {round(document.confidence * 100)}%",
            "",
            "---",
            "",
            "## Summary",
            "",
            clean(document.summary),
            "",
            "## Deep Dive",
            "",
            clean(document.content),
            "",
        ]

        if document.key_insights:
            lines += ["## Key Insights", ""]
            lines += [f"{i}. {clean(insight)}" for i, insight in enumerate(document.key_insights, 1)]
            lines.append("")

        if document.patterns:
            lines += ["## Patterns", ""]
            lines += [f"- {clean(pattern)}" for pattern in document.patterns]
            lines.append("")

        if document.recommendations:
            lines += ["## Companion Guidelines", ""]
            lines += [f"→ {clean(rec)}" for rec in document.recommendations]
            lines.append("")

        lines += [
            "---",
            "",
            f"*Based on {document.memory_count} memories | Version {document.version}*",
            f"*Status: {DocumentStatus(document.status).value}*",
            "",
        ]
        return "\n".join(lines)

    async def upsert_document(self, document: IndexDocument) -> SyncResult:
        """Write (or overwrite) the document's Markdown file."""
        filepath = self.document_path(document)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(filepath, "w", encoding="utf-8") as f:
            await f.write(self.render(document))
        self.sanitizer.set_secure_permissions(filepath)

        file_id = filepath.relative_to(self.vault_path).as_posix()
        logger.debug(f"Exported {document.index_code} to {file_id}")
        return SyncResult(file_id=file_id, url=filepath.resolve().as_uri())

    async def read_document(self, document: IndexDocument) -> Optional[str]:
        """Exported Markdown for a document, or None if never exported."""
        filepath = self.document_path(document)
        if not filepath.exists():
            return None

        async with aiofiles.open(filepath, "r", encoding="utf-8") as f:
            return await f.read()
