"""
TrabajaTecnico Backend — Post-Commit Hooks
===========================================

What:  Runs best-effort side effects (notifications, mail) after the
       primary write of a lifecycle operation has been committed.
How:   Hooks run in list order, each awaited on its own. An exception or
       a failure result (``success=False``) is logged at WARNING with the
       hook name; the next hook still runs and nothing is re-raised.

    commit ──▶ hook 1 ──▶ hook 2 ──▶ ... ──▶ response
                 ✗ logged   ✓

Returns a summary {hook name: outcome} used for logging and tests:
    "ok" | "failed: <reason>" | "error: <ExceptionType>"
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, NamedTuple, Optional

logger = logging.getLogger(__name__)


class PostCommitHook(NamedTuple):
    name: str
    action: Callable[[], Awaitable[Any]]


def _failure_reason(result: Any) -> Optional[str]:
    """None when the result reports success (or reports nothing)."""
    if getattr(result, "success", True):
        return None
    return getattr(result, "reason", None) or getattr(result, "error", None) or "unknown"


async def run_post_commit_hooks(
    hooks: Iterable[PostCommitHook], subject: str = ""
) -> Dict[str, str]:
    """
    Executes every hook; ``subject`` (e.g. "application 42") prefixes logs.
    """
    outcomes: Dict[str, str] = {}
    for hook in hooks:
        try:
            result = await hook.action()
        except Exception as e:
            logger.warning(
                "Post-commit hook '%s' raised for %s: %s",
                hook.name,
                subject or "-",
                e,
                exc_info=True,
            )
            outcomes[hook.name] = f"error: {e.__class__.__name__}"
            continue

        reason = _failure_reason(result)
        if reason is None:
            outcomes[hook.name] = "ok"
        else:
            logger.warning(
                "Post-commit hook '%s' failed for %s: %s", hook.name, subject or "-", reason
            )
            outcomes[hook.name] = f"failed: {reason}"

    logger.info("Post-commit hooks for %s: %s", subject or "-", outcomes)
    return outcomes
