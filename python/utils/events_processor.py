from dataclasses import dataclass, field
from utils.models.general_models import NextBlockToProcess
from utils.session import Session
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


@dataclass
class ProcessingResult:
    start_block: int
    end_block: int
    processing_duration_in_secs: float
    db_insertion_duration_in_secs: float
    # outcome name -> number of events
    outcomes: Dict[str, int] = field(default_factory=dict)
    # Lowest block holding an event that was left unapplied and must be re-read
    first_unapplied_block: Optional[int] = None

    @property
    def last_safe_block(self) -> int:
        """Highest block the checkpoint may cover without skipping unapplied events."""
        if self.first_unapplied_block is None:
            return self.end_block
        return min(self.end_block, self.first_unapplied_block - 1)


class EventsProcessor(ABC):
    # Name of the processor for status logging
    # This will get stored in the database as the key of the processor's checkpoint
    @abstractmethod
    def name(self) -> str:
        pass

    # Name of the DB schema this processor writes to
    @abstractmethod
    def schema(self) -> str:
        pass

    # Process all decoded event logs of one or more consecutive blocks.
    # Records arrive in chain order (block number, then log index).
    # A failure that is not local to a single event fails the entire batch.
    @abstractmethod
    def process_events(
        self,
        records: List[Dict[str, Any]],
        start_block: int,
        end_block: int,
    ) -> ProcessingResult:
        pass

    def update_last_processed_block(self, last_processed_block: int) -> None:
        with Session() as session, session.begin():
            checkpoint = session.get(NextBlockToProcess, self.name())
            next_block = last_processed_block + 1
            if checkpoint is None:
                session.add(
                    NextBlockToProcess(indexer_name=self.name(), next_block=next_block)
                )
            elif next_block > checkpoint.next_block:
                checkpoint.next_block = next_block
