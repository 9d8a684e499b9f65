import logging
from typing import Iterable, Iterator, List, Optional

from workbench.errors import QueueOrderError
from workbench.models import CleaningAction, ProposalResult, ProposalStatus

logger = logging.getLogger(__name__)


class ActionQueue:
    """
    The cleaning recipe: an ordered list of pending actions.

    Redundant proposals are declined at insertion time. Two actions are
    redundant when their `redundancy_key` matches: same kind for steps without
    a column, same kind and column otherwise, and same column plus same find
    text for substring replacement.
    """

    def __init__(self, actions: Optional[Iterable[CleaningAction]] = None):
        self._actions: List[CleaningAction] = []
        for action in actions or []:
            self.propose(action)

    def __iter__(self) -> Iterator[CleaningAction]:
        return iter(list(self._actions))

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def actions(self) -> List[CleaningAction]:
        return list(self._actions)

    @property
    def ids(self) -> List[str]:
        return [a.id for a in self._actions]

    def find_redundant(self, action: CleaningAction) -> Optional[CleaningAction]:
        key = action.redundancy_key
        for existing in self._actions:
            if existing.redundancy_key == key:
                return existing
        return None

    def propose(self, action: CleaningAction) -> ProposalResult:
        existing = self.find_redundant(action)
        if existing is not None:
            reason = f'A similar "{action.description}" step already exists.'
            logger.info("rejected redundant action %s (matches %s)", action.kind, existing.id)
            return ProposalResult(
                status=ProposalStatus.REJECTED_REDUNDANT, action=action, reason=reason
            )
        self._actions.append(action)
        return ProposalResult(status=ProposalStatus.ACCEPTED, action=action)

    def remove(self, action_id: str) -> bool:
        before = len(self._actions)
        self._actions = [a for a in self._actions if a.id != action_id]
        return len(self._actions) < before

    def reorder(self, new_order: List[str]) -> None:
        """Rearrange the queue; `new_order` must hold every queued id exactly once."""
        if len(new_order) != len(self._actions) or set(new_order) != set(self.ids):
            raise QueueOrderError("new order must be a permutation of the queued action ids")
        by_id = {a.id: a for a in self._actions}
        self._actions = [by_id[i] for i in new_order]

    def clear(self) -> None:
        self._actions = []
