"""Vault package - Export of index documents to human-readable files."""

from memory_index.vault.base import DocumentSyncService, SyncResult
from memory_index.vault.markdown_vault import MarkdownVault

__all__ = ["DocumentSyncService", "SyncResult", "MarkdownVault"]
