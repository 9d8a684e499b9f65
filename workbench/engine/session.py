import logging
import uuid
from typing import List, Optional

from workbench.engine import executor
from workbench.engine.changes import PreviewDataset
from workbench.engine.queue import ActionQueue
from workbench.export import export_filename, serialize
from workbench.models import CleaningAction, Column, Dataset, ProposalResult
from workbench.profiling.inference import with_inferred_types

logger = logging.getLogger(__name__)


class CleaningSession:
    """
    One dataset under cleaning: the committed baseline plus the pending recipe.

    Every read of the preview re-executes the whole recipe against the
    baseline. `apply` is the only operation that replaces the baseline; it
    clears the recipe in the same step.
    """

    def __init__(self, dataset: Dataset, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.dataset = with_inferred_types(dataset)
        self.queue = ActionQueue()
        self.version = 0

    @property
    def actions(self) -> List[CleaningAction]:
        return self.queue.actions

    def propose(self, action: CleaningAction) -> ProposalResult:
        return self.queue.propose(action)

    def remove(self, action_id: str) -> bool:
        return self.queue.remove(action_id)

    def reorder(self, new_order: List[str]) -> None:
        self.queue.reorder(new_order)

    def reset(self) -> None:
        logger.info("session %s: recipe reset (%d steps discarded)", self.session_id, len(self.queue))
        self.queue.clear()

    def preview(self) -> PreviewDataset:
        return executor.execute(self.dataset, self.queue.actions)

    def export(self) -> str:
        return serialize(self.preview())

    def suggested_filename(self) -> str:
        return export_filename()

    def apply(self) -> Dataset:
        """Commit the current preview as the new baseline and empty the recipe."""
        preview = self.preview()
        columns = [Column(name=name) for name in preview.columns]
        committed = with_inferred_types(Dataset(columns=columns, data=preview.records()))
        steps = len(self.queue)
        self.dataset = committed
        self.queue.clear()
        self.version += 1
        logger.info(
            "session %s: applied %d steps -> %d rows x %d columns (version %d)",
            self.session_id, steps, len(committed.data), len(committed.columns), self.version,
        )
        return committed
