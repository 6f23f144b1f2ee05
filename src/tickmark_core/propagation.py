"""Smart toggle: cascading checked/unchecked state between related todos.

The propagator never touches text. It returns an ordered change set that a
caller applies to the document (usually inside one transaction).
"""

import logging
from typing import Dict, List, Optional

from .config import PropagationMode, SmartTogglePolicy
from .discovery import TodoMap, descendants
from .errors import InvalidTargetError
from .models import StateChange, TodoState

logger = logging.getLogger(__name__)


class SmartTogglePropagator:
    """Compute the full cascade for one explicit state change."""

    def __init__(self, policy: Optional[SmartTogglePolicy] = None) -> None:
        self.policy = policy or SmartTogglePolicy()

    def toggle(self, todo_map: TodoMap, item_id: str) -> List[StateChange]:
        """Flip an item's state and cascade."""
        if item_id not in todo_map:
            raise InvalidTargetError(item_id)
        return self.propagate(todo_map, item_id, todo_map[item_id].state.toggled())

    def propagate(self, todo_map: TodoMap, item_id: str, new_state: TodoState) -> List[StateChange]:
        """Set ``item_id`` to ``new_state`` and compute every resulting change.

        Args:
            todo_map: Current todo map (not modified)
            item_id: Target item
            new_state: Requested state

        Returns:
            Ordered ``StateChange`` list: the target, then forced descendants,
            then flipped ancestors. Empty if the target already has ``new_state``.

        Raises:
            InvalidTargetError: If ``item_id`` is not in ``todo_map``
        """
        if item_id not in todo_map:
            raise InvalidTargetError(item_id)
        if todo_map[item_id].state is new_state:
            return []

        states: Dict[str, TodoState] = {key: item.state for key, item in todo_map.items()}
        changes: Dict[str, StateChange] = {}

        def set_state(key: str) -> bool:
            old = states[key]
            if old is new_state:
                return False
            states[key] = new_state
            changes[key] = StateChange(item_id=key, old_state=old, new_state=new_state)
            return True

        set_state(item_id)
        if not self.policy.enabled:
            return list(changes.values())

        checking = new_state is TodoState.CHECKED
        down = self.policy.check_down if checking else self.policy.uncheck_down
        up = self.policy.check_up if checking else self.policy.uncheck_up

        if down is PropagationMode.ALL_CHILDREN:
            for key in descendants(todo_map, item_id):
                set_state(key)
        elif down is PropagationMode.DIRECT_CHILDREN:
            self._cascade_direct(todo_map, item_id, set_state)

        if up is not PropagationMode.NONE:
            parent_id = todo_map[item_id].parent_id
            while parent_id is not None:
                if up is PropagationMode.ALL_CHILDREN:
                    related = descendants(todo_map, parent_id)
                else:
                    related = todo_map[parent_id].children
                if checking:
                    should_flip = all(states[key] is TodoState.CHECKED for key in related)
                else:
                    should_flip = any(states[key] is TodoState.UNCHECKED for key in related)
                # Stop at the first ancestor that does not change.
                if not should_flip or not set_state(parent_id):
                    break
                parent_id = todo_map[parent_id].parent_id

        logger.debug(f"Propagated {item_id} -> {new_state.value}: {len(changes)} change(s)")
        return list(changes.values())

    @staticmethod
    def _cascade_direct(todo_map: TodoMap, item_id: str, set_state) -> None:
        for child_id in todo_map[item_id].children:
            if set_state(child_id):
                SmartTogglePropagator._cascade_direct(todo_map, child_id, set_state)


def propagate(
    todo_map: TodoMap,
    item_id: str,
    new_state: TodoState,
    policy: Optional[SmartTogglePolicy] = None,
) -> List[StateChange]:
    """Module-level shortcut for ``SmartTogglePropagator(policy).propagate``."""
    return SmartTogglePropagator(policy).propagate(todo_map, item_id, new_state)
