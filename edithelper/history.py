"""Bounded undo history of applied field changes."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tenacity import retry, retry_if_result, stop_after_attempt, wait_fixed

from .adapter import Adapter, AdapterError, FieldNotFoundError, StructuralNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ACTIONS = 50


@dataclass
class FieldChange:
    """One field write; ``old_value`` is read from the form right before writing."""

    field_id: str
    old_value: str
    new_value: str
    structural_ref: Optional[str] = None


@dataclass
class Action:
    """Everything one command changed: the unit of undo."""

    kind: str
    changes: List[FieldChange] = field(default_factory=list)
    added_structural: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.changes and not self.added_structural


@dataclass
class RevertOutcome:
    """What a revert did."""

    actions_reverted: int = 0
    fields_restored: int = 0
    structural_removed: int = 0
    failed: int = 0
    warnings: int = 0


class ActionHistory:
    """FIFO-evicting stack of actions with exact reversal.

    Args:
        max_actions: Bound on stored actions; the oldest is dropped beyond it.
        removal_retry_attempts: Removal requests per structural entry.
        removal_retry_delay: Seconds between removal requests.
    """

    def __init__(
        self,
        max_actions: int = DEFAULT_MAX_ACTIONS,
        removal_retry_attempts: int = 4,
        removal_retry_delay: float = 0.14,
    ):
        if max_actions < 1:
            raise ValueError("max_actions must be at least 1")
        self.max_actions = max_actions
        self.removal_retry_attempts = removal_retry_attempts
        self.removal_retry_delay = removal_retry_delay
        self._actions: List[Action] = []

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def actions(self) -> List[Action]:
        return list(self._actions)

    def push(self, action: Action) -> None:
        self._actions.append(action)
        while len(self._actions) > self.max_actions:
            evicted = self._actions.pop(0)
            logger.debug(f"History full, evicted oldest action '{evicted.kind}'")

    def pop(self) -> Optional[Action]:
        if not self._actions:
            return None
        return self._actions.pop()

    def drain(self) -> List[Action]:
        """Remove and return all actions, oldest first."""
        drained, self._actions = self._actions, []
        return drained

    def clear(self) -> None:
        self._actions.clear()

    async def revert_last(self, adapter: Adapter) -> RevertOutcome:
        action = self.pop()
        if action is None:
            logger.info("Nothing to revert")
            return RevertOutcome()
        logger.info(f"Reverting last action '{action.kind}'")
        return await self._revert(adapter, [action])

    async def revert_all(self, adapter: Adapter) -> RevertOutcome:
        actions = self.drain()
        if not actions:
            logger.info("Nothing to revert")
            return RevertOutcome()
        logger.info(f"Reverting all {len(actions)} actions")
        return await self._revert(adapter, actions)

    async def _revert(self, adapter: Adapter, actions: List[Action]) -> RevertOutcome:
        """Restore fields to their earliest old values, then remove created entries.

        ``actions`` must be in the order they were applied.
        """
        outcome = RevertOutcome(actions_reverted=len(actions))

        earliest: Dict[str, FieldChange] = {}
        refs: List[str] = []
        for action in actions:
            for change in action.changes:
                earliest.setdefault(change.field_id, change)
            for ref in action.added_structural:
                if ref not in refs:
                    refs.append(ref)

        for change in earliest.values():
            try:
                await adapter.set_field_value(change.field_id, change.old_value)
                outcome.fields_restored += 1
            except FieldNotFoundError:
                if change.structural_ref in refs:
                    # the entry is gone already, its removal below is a no-op
                    continue
                logger.warning(f"Cannot restore {change.field_id}: field no longer exists")
                outcome.failed += 1
            except AdapterError as e:
                logger.warning(f"Cannot restore {change.field_id}: {e}")
                outcome.failed += 1

        for ref in refs:
            if await self._remove_structural(adapter, ref):
                outcome.structural_removed += 1
                continue

            outcome.warnings += 1
            logger.warning(f"Could not remove {ref}; restoring its fields instead")
            for change in earliest.values():
                if change.structural_ref != ref:
                    continue
                try:
                    await adapter.set_field_value(change.field_id, change.old_value)
                except AdapterError as e:
                    logger.warning(f"Cannot restore {change.field_id}: {e}")

        logger.info(
            f"Revert finished: {outcome.fields_restored} fields restored, "
            f"{outcome.structural_removed} entries removed, {outcome.warnings} warnings"
        )
        return outcome

    async def _remove_structural(self, adapter: Adapter, ref: str) -> bool:
        """Request removal until the host reports the entry gone.

        Returns True when the entry is detached, including when it already was.
        """

        @retry(
            stop=stop_after_attempt(self.removal_retry_attempts),
            wait=wait_fixed(self.removal_retry_delay),
            retry=retry_if_result(lambda connected: connected),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        async def _attempt() -> bool:
            return await adapter.remove_structural_entry(ref)

        try:
            connected = await _attempt()
        except StructuralNotFoundError:
            return True
        except AdapterError as e:
            logger.warning(f"Removal of {ref} failed: {e}")
            return False
        return not connected
