"""
Maintenance Jobs

Background tasks run by an external trigger (cron, a worker queue, ...).
Jobs log their own failures and return a small summary instead of raising.
"""

import asyncio
import datetime
import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from memory_index.engine.index_engine import MemoryIndex

logger = logging.getLogger("memory_index.jobs")


# ========== Job Registry ==========
# Maps job names to coroutine functions taking the MemoryIndex

JOB_REGISTRY = {}


def register_job(name: str):
    """Decorator to register a job function."""
    def decorator(func):
        JOB_REGISTRY[name] = func
        return func
    return decorator


@register_job("regenerate_stale")
async def job_regenerate_stale(system: "MemoryIndex") -> Dict[str, Any]:
    """
    Staleness sweep over every user with pending documents.

    Users are swept in parallel, each user's documents one at a time.
    """
    logger.info("Executing staleness sweep...")
    try:
        user_ids = await system.repository.list_users_with_pending_documents()
        if not user_ids:
            logger.info("No documents pending regeneration.")
            return {"users": 0, "regenerated": 0}

        results = await system.lifecycle.regenerate_stale_for_users(user_ids)
        regenerated = sum(len(codes) for codes in results.values())
        logger.info(f"Sweep complete: {regenerated} documents across {len(user_ids)} users")
        return {"users": len(user_ids), "regenerated": regenerated}

    except Exception as e:
        logger.error(f"Staleness sweep failed: {e}")
        return {"users": 0, "regenerated": 0, "error": str(e)}


@register_job("sync_documents")
async def job_sync_documents(system: "MemoryIndex", user_id: Optional[str] = None) -> Dict[str, Any]:
    """Re-export active documents of one user through the sync service."""
    if user_id is None:
        logger.warning("sync_documents needs a user_id, skipping.")
        return {"synced": 0, "errors": []}
    if system.lifecycle.sync_service is None:
        logger.info("Document sync is disabled, skipping.")
        return {"synced": 0, "errors": []}

    logger.info(f"Executing document sync for user {user_id}...")
    try:
        return await system.lifecycle.sync_all_documents(user_id)
    except Exception as e:
        logger.error(f"Document sync failed for user {user_id}: {e}")
        return {"synced": 0, "errors": [str(e)]}


@register_job("refresh_knowledge")
async def job_refresh_knowledge(system: "MemoryIndex", user_id: Optional[str] = None) -> Dict[str, Any]:
    """Recompute a user's knowledge area scores from their memories."""
    if user_id is None:
        logger.warning("refresh_knowledge needs a user_id, skipping.")
        return {"refreshed": False}

    try:
        profile = await system.knowledge.refresh_scores(user_id)
        return {"refreshed": True, "phase": profile.onboarding_phase}
    except Exception as e:
        logger.error(f"Knowledge refresh failed for user {user_id}: {e}")
        return {"refreshed": False, "error": str(e)}


@register_job("vault_backup")
async def job_vault_backup(system: "MemoryIndex") -> Dict[str, Any]:
    """Dated copy of the Markdown vault next to it."""
    if system.vault is None:
        logger.info("Vault is disabled, skipping backup.")
        return {"backup_path": None}

    logger.info("Executing Vault Backup...")
    try:
        vault_path = Path(system.vault.vault_path)
        if not vault_path.exists():
            logger.warning("Vault path does not exist, skipping backup.")
            return {"backup_path": None}

        backup_dir = vault_path.parent / "vault_backups"
        backup_dir.mkdir(exist_ok=True)

        now = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = backup_dir / f"vault_backup_{now}"

        await asyncio.to_thread(shutil.copytree, vault_path, backup_path, dirs_exist_ok=True)
        logger.info(f"Vault backed up to: {backup_path}")
        return {"backup_path": str(backup_path)}

    except Exception as e:
        logger.error(f"Vault Backup failed: {e}")
        return {"backup_path": None, "error": str(e)}


def get_job_types() -> list:
    """Get list of available job types."""
    return list(JOB_REGISTRY.keys())


def get_job_function(job_type: str):
    """Get the job function for a given job type."""
    return JOB_REGISTRY.get(job_type)


async def run_job(job_type: str, system: "MemoryIndex", **kwargs) -> Dict[str, Any]:
    """
    Run a registered job by name.

    Raises:
        KeyError: Unknown job type
    """
    func = get_job_function(job_type)
    if func is None:
        raise KeyError(f"Unknown job type: {job_type}")
    return await func(system, **kwargs)
