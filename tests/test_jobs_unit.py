"""
Unit Tests for Maintenance Jobs

Tests the individual job functions in jobs.py using mocks.
"""

import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from memory_index.scheduling.jobs import (
    JOB_REGISTRY,
    get_job_types,
    job_refresh_knowledge,
    job_regenerate_stale,
    job_sync_documents,
    job_vault_backup,
    register_job,
    run_job,
)


class TestJobs:
    """Tests for job functions."""

    @pytest.fixture
    def mock_system(self):
        """Create a mock MemoryIndex."""
        system = MagicMock()
        system.repository = AsyncMock()
        system.lifecycle = MagicMock()
        system.lifecycle.regenerate_stale_for_users = AsyncMock()
        system.lifecycle.sync_all_documents = AsyncMock()
        system.knowledge = MagicMock()
        system.knowledge.refresh_scores = AsyncMock()
        return system

    @pytest.mark.asyncio
    async def test_regenerate_stale_sweeps_pending_users(self, mock_system):
        mock_system.repository.list_users_with_pending_documents.return_value = ["u1", "u2"]
        mock_system.lifecycle.regenerate_stale_for_users.return_value = {"u1": ["C001", "A003"], "u2": []}

        result = await job_regenerate_stale(mock_system)

        mock_system.lifecycle.regenerate_stale_for_users.assert_awaited_once_with(["u1", "u2"])
        assert result == {"users": 2, "regenerated": 2}

    @pytest.mark.asyncio
    async def test_regenerate_stale_nothing_pending(self, mock_system):
        mock_system.repository.list_users_with_pending_documents.return_value = []

        result = await job_regenerate_stale(mock_system)

        mock_system.lifecycle.regenerate_stale_for_users.assert_not_called()
        assert result["regenerated"] == 0

    @pytest.mark.asyncio
    async def test_regenerate_stale_reports_errors(self, mock_system):
        mock_system.repository.list_users_with_pending_documents.side_effect = RuntimeError("db down")

        result = await job_regenerate_stale(mock_system)

        assert result["error"] == "db down"

    @pytest.mark.asyncio
    async def test_sync_documents_requires_user(self, mock_system):
        result = await job_sync_documents(mock_system)

        assert result == {"synced": 0, "errors": []}
        mock_system.lifecycle.sync_all_documents.assert_not_called()

    @pytest.mark.asyncio
    async def test_sync_documents_disabled(self, mock_system):
        mock_system.lifecycle.sync_service = None

        result = await job_sync_documents(mock_system, user_id="u1")

        assert result["synced"] == 0
        mock_system.lifecycle.sync_all_documents.assert_not_called()

    @pytest.mark.asyncio
    async def test_sync_documents(self, mock_system):
        mock_system.lifecycle.sync_all_documents.return_value = {"synced": 3, "errors": []}

        result = await job_sync_documents(mock_system, user_id="u1")

        assert result["synced"] == 3

    @pytest.mark.asyncio
    async def test_refresh_knowledge(self, mock_system):
        mock_system.knowledge.refresh_scores.return_value = MagicMock(onboarding_phase="familiar")

        result = await job_refresh_knowledge(mock_system, user_id="u1")

        mock_system.knowledge.refresh_scores.assert_awaited_once_with("u1")
        assert result == {"refreshed": True, "phase": "familiar"}

    @pytest.mark.asyncio
    async def test_vault_backup_copies_vault(self, mock_system, tmp_path):
        vault_path = tmp_path / "vault"
        (vault_path / "u1").mkdir(parents=True)
        (vault_path / "u1" / "doc.md").write_text("# Doc")
        mock_system.vault = MagicMock(vault_path=vault_path)

        result = await job_vault_backup(mock_system)

        backup = tmp_path / "vault_backups"
        assert result["backup_path"].startswith(str(backup))
        copied = list(backup.glob("vault_backup_*/u1/doc.md"))
        assert len(copied) == 1

    @pytest.mark.asyncio
    async def test_vault_backup_copies_off_the_event_loop(self, mock_system, tmp_path, monkeypatch):
        vault_path = tmp_path / "vault"
        vault_path.mkdir()
        mock_system.vault = MagicMock(vault_path=vault_path)
        copy_threads = []
        monkeypatch.setattr(
            "memory_index.scheduling.jobs.shutil.copytree",
            lambda *args, **kwargs: copy_threads.append(threading.get_ident()),
        )

        await job_vault_backup(mock_system)

        assert len(copy_threads) == 1
        assert copy_threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_vault_backup_without_vault(self, mock_system):
        mock_system.vault = None

        assert await job_vault_backup(mock_system) == {"backup_path": None}


class TestJobRegistry:
    """Tests for job registration and dispatch."""

    def test_builtin_jobs_registered(self):
        assert {"regenerate_stale", "sync_documents", "refresh_knowledge", "vault_backup"} <= set(get_job_types())

    @pytest.mark.asyncio
    async def test_register_and_run(self):
        calls = []

        @register_job("test_custom_job")
        async def custom_job(system, **kwargs):
            calls.append(kwargs)
            return {"ok": True}

        try:
            assert await run_job("test_custom_job", MagicMock(), user_id="u1") == {"ok": True}
            assert calls == [{"user_id": "u1"}]
        finally:
            JOB_REGISTRY.pop("test_custom_job", None)

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(KeyError):
            await run_job("does_not_exist", MagicMock())
