"""
Tests for Markdown Vault

Tests the MarkdownVault file layout and document rendering.
"""

import os
import stat

import pytest

from memory_index.models.index_document import DocumentStatus, IndexDocument
from memory_index.vault.markdown_vault import MarkdownVault


@pytest.fixture
def temp_vault(tmp_path):
    """Create a temporary vault for testing."""
    return MarkdownVault(base_path=str(tmp_path))


@pytest.fixture
def document():
    return IndexDocument(
        user_id="user-1",
        index_code="C001",
        domain="C",
        title="A Nurse at Heart",
        summary="Works as a nurse on a busy ward.",
        content="They take real pride in patient care.",
        key_insights=["Nursing is central to identity", "Works nights"],
        patterns=["Decompresses after long shifts"],
        recommendations=["Ask how the last shift went"],
        memory_count=2,
        confidence=0.8,
        version=3,
        status=DocumentStatus.ACTIVE,
    )


class TestMarkdownVault:
    """Tests for MarkdownVault."""

    @pytest.mark.asyncio
    async def test_initialize_creates_vault(self, temp_vault):
        await temp_vault.initialize()

        assert temp_vault.vault_path.is_dir()
        assert stat.S_IMODE(os.stat(temp_vault.vault_path).st_mode) == 0o700

    def test_document_path_layout(self, temp_vault, document):
        path = temp_vault.document_path(document)

        assert path.relative_to(temp_vault.vault_path).parts == (
            "user-1",
            "C - Career & Professional",
            "C001 - Current Work.md",
        )

    def test_user_id_cannot_escape_vault(self, temp_vault, document):
        document.user_id = "../../etc"
        path = temp_vault.document_path(document)

        assert temp_vault.vault_path in path.parents
        assert ".." not in path.relative_to(temp_vault.vault_path).parts

    def test_render_sections(self, temp_vault, document):
        text = temp_vault.render(document)

        assert text.startswith("# A Nurse at Heart")
        assert "**Index:** C001 | Career & Professional > Current Work" in text
        assert "**Confidence:** 80%" in text
        assert "## Summary" in text
        assert "1. Nursing is central to identity" in text
        assert "- Decompresses after long shifts" in text
        assert "→ Ask how the last shift went" in text
        assert "*Based on 2 memories | Version 3*" in text
        assert "*Status: active*" in text

    def test_render_skips_empty_lists(self, temp_vault, document):
        document.patterns = []
        text = temp_vault.render(document)

        assert "## Patterns" not in text

    def test_render_sanitizes_model_output(self, temp_vault, document):
        document.summary = "Fine <script>alert(1)</script>text"
        text = temp_vault.render(document)

        assert "<script>" not in text
        assert "Fine text" in text

    @pytest.mark.asyncio
    async def test_upsert_writes_file(self, temp_vault, document):
        await temp_vault.initialize()

        result = await temp_vault.upsert_document(document)

        path = temp_vault.document_path(document)
        assert path.exists()
        assert result.file_id == "user-1/C - Career & Professional/C001 - Current Work.md"
        assert result.url.startswith("file://")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    @pytest.mark.asyncio
    async def test_upsert_overwrites(self, temp_vault, document):
        await temp_vault.initialize()
        await temp_vault.upsert_document(document)

        document.summary = "Now teaches at a primary school."
        document.version = 4
        await temp_vault.upsert_document(document)

        text = await temp_vault.read_document(document)
        assert "Now teaches at a primary school." in text
        assert "busy ward" not in text
        assert "Version 4" in text

    @pytest.mark.asyncio
    async def test_read_missing_document(self, temp_vault, document):
        assert await temp_vault.read_document(document) is None
