"""
Pipeline Hook System

Before/after hooks around indexing pipeline stages (classify, directive,
map, synthesize, embed, persist, rank). Hooks observe and annotate the
shared stage context; a failing hook is logged and never aborts a stage.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("memory_index.hooks")


class PipelineHookManager:
    """
    Manages hooks (callbacks) for pipeline stages.

    Stage-specific hooks receive ``(context)``; wildcard ("*") hooks
    receive ``(stage, context)``.

    Example:
        >>> hooks = PipelineHookManager()
        >>>
        >>> @hooks.after("classify")
        >>> async def log_primary(context):
        >>>     print(context["classification"].primary_index)
        >>>
        >>> async with hooks.stage("classify", {"memory": memory}) as ctx:
        >>>     ctx["classification"] = await classifier.classify(memory)
    """

    def __init__(self):
        self.before_hooks: Dict[str, List[Callable]] = {}
        self.after_hooks: Dict[str, List[Callable]] = {}

    def register_before(self, stage: str, hook: Callable) -> None:
        """
        Register a hook to run before a pipeline stage.

        Args:
            stage: Stage name or "*" for all stages
            hook: Async callable
        """
        self.before_hooks.setdefault(stage, []).append(hook)
        logger.debug(f"Registered before hook for stage: {stage}")

    def register_after(self, stage: str, hook: Callable) -> None:
        """
        Register a hook to run after a pipeline stage.

        Args:
            stage: Stage name or "*" for all stages
            hook: Async callable
        """
        self.after_hooks.setdefault(stage, []).append(hook)
        logger.debug(f"Registered after hook for stage: {stage}")

    def before(self, stage: str):
        """Decorator for registering before hooks."""
        def decorator(func: Callable) -> Callable:
            self.register_before(stage, func)
            return func
        return decorator

    def after(self, stage: str):
        """Decorator for registering after hooks."""
        def decorator(func: Callable) -> Callable:
            self.register_after(stage, func)
            return func
        return decorator

    async def _run(self, hooks: List[Callable], stage: str, context: Dict[str, Any], wildcard: bool) -> None:
        for hook in hooks:
            try:
                if wildcard:
                    await hook(stage, context)
                else:
                    await hook(context)
            except Exception as e:
                logger.error(f"Hook failed for stage '{stage}': {e}", exc_info=True)

    async def execute_before(self, stage: str, context: Dict[str, Any]) -> None:
        """Run before hooks: wildcards first, then stage-specific ones."""
        await self._run(self.before_hooks.get("*", []), stage, context, wildcard=True)
        await self._run(self.before_hooks.get(stage, []), stage, context, wildcard=False)

    async def execute_after(self, stage: str, context: Dict[str, Any]) -> None:
        """Run after hooks: stage-specific first, then wildcards."""
        await self._run(self.after_hooks.get(stage, []), stage, context, wildcard=False)
        await self._run(self.after_hooks.get("*", []), stage, context, wildcard=True)

    @asynccontextmanager
    async def stage(self, stage: str, context: Optional[Dict[str, Any]] = None):
        """
        Wrap a block of pipeline work in before/after hooks.

        Records ``duration_ms`` in the context. After hooks only run when
        the block completes; an exception propagates unchanged.
        """
        context = context if context is not None else {}
        await self.execute_before(stage, context)
        started = time.perf_counter()
        yield context
        context["duration_ms"] = (time.perf_counter() - started) * 1000
        await self.execute_after(stage, context)

    def clear_hooks(self, stage: Optional[str] = None) -> None:
        """
        Clear hooks for a specific stage or all hooks.

        Args:
            stage: Stage to clear, or None to clear all hooks
        """
        if stage:
            self.before_hooks.pop(stage, None)
            self.after_hooks.pop(stage, None)
        else:
            self.before_hooks.clear()
            self.after_hooks.clear()

    def get_hook_count(self, stage: Optional[str] = None) -> Dict[str, int]:
        """Get count of registered hooks."""
        if stage:
            return {
                "before": len(self.before_hooks.get(stage, [])),
                "after": len(self.after_hooks.get(stage, [])),
            }
        total_before = sum(len(hooks) for hooks in self.before_hooks.values())
        total_after = sum(len(hooks) for hooks in self.after_hooks.values())
        return {
            "before": total_before,
            "after": total_after,
            "total": total_before + total_after,
        }


def register_logging_hooks(hooks: PipelineHookManager, logger_name: str = "memory_index.pipeline") -> None:
    """Attach debug-level stage timing logs to every stage."""
    pipeline_logger = logging.getLogger(logger_name)

    async def log_stage_start(stage, context):
        pipeline_logger.debug(f"Stage '{stage}' started")

    async def log_stage_end(stage, context):
        duration = context.get("duration_ms")
        if duration is not None:
            pipeline_logger.debug(f"Stage '{stage}' completed in {duration:.1f}ms")

    hooks.register_before("*", log_stage_start)
    hooks.register_after("*", log_stage_end)
