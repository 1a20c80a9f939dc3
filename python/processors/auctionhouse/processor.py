import logging
import threading

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from time import perf_counter
from typing import Any, Dict, List, Optional, Set

from processors.auctionhouse.auctionhouse_constants import AUCTIONHOUSE_SCHEMA_NAME
from processors.auctionhouse.auctionhouse_enums import ApplyOutcome
from processors.auctionhouse.errors import MalformedEventError, OutOfOrderEventError
from processors.auctionhouse.event_parser import parse_event
from processors.auctionhouse.events import AuctionhouseEvent, EscrowEvent
from processors.auctionhouse.materializer import ListingMaterializer
from processors.auctionhouse.store import ListingStore
from utils.config import AuctionhouseConfig
from utils.event_source import PROCESSOR_SERVICE_TYPE
from utils.events_processor import EventsProcessor, ProcessingResult
from utils.general_utils import standardize_address
from utils.metrics import (
    HALTED_LISTINGS_COUNTER,
    MALFORMED_EVENTS_COUNTER,
    PROCESSED_EVENTS_COUNTER,
)
from utils.processor_name import ProcessorName

# Partition key for events that do not belong to a listing
ESCROW_PARTITION = None


def partition_by_listing(
    events: List[AuctionhouseEvent],
) -> Dict[Optional[int], List[AuctionhouseEvent]]:
    """Groups events by listing id, keeping chain order within each group."""
    partitions: Dict[Optional[int], List[AuctionhouseEvent]] = {}
    for event in events:
        key = ESCROW_PARTITION if isinstance(event, EscrowEvent) else event.listing_id
        partitions.setdefault(key, []).append(event)
    return partitions


class AuctionhouseProcessor(EventsProcessor):
    def __init__(self, config: AuctionhouseConfig):
        self.config = config
        self.contract_addresses: Set[str] = {
            standardize_address(config.marketplace_contract_address)
        }
        if config.settlement_contract_address is not None:
            self.contract_addresses.add(
                standardize_address(config.settlement_contract_address)
            )
        self.materializer = ListingMaterializer(config.marketplace_contract_address)
        self.store = ListingStore(self.materializer, self.name())

        # Listing id -> block of its first unapplied event; cleared only by a restart
        self.halted_listings: Dict[int, int] = {}
        self._halted_lock = threading.Lock()

    def name(self) -> str:
        return ProcessorName.AUCTIONHOUSE_PROCESSOR.value

    def schema(self) -> str:
        return AUCTIONHOUSE_SCHEMA_NAME

    def process_events(
        self,
        records: List[Dict[str, Any]],
        start_block: int,
        end_block: int,
    ) -> ProcessingResult:
        outcomes: Counter = Counter()

        parse_start = perf_counter()
        events = self.parse_records(records, outcomes)
        partitions = partition_by_listing(events)
        processing_duration_in_secs = perf_counter() - parse_start

        db_start = perf_counter()
        num_tasks = min(self.config.num_concurrent_processing_tasks, len(partitions))
        if num_tasks <= 1:
            for partition in partitions.values():
                outcomes.update(self.apply_partition(partition))
        else:
            with ThreadPoolExecutor(max_workers=num_tasks) as executor:
                for partition_outcomes in executor.map(
                    self.apply_partition, partitions.values()
                ):
                    outcomes.update(partition_outcomes)
        db_insertion_duration_in_secs = perf_counter() - db_start

        for outcome, count in outcomes.items():
            PROCESSED_EVENTS_COUNTER.labels(
                processor_name=self.name(), outcome=outcome
            ).inc(count)

        return ProcessingResult(
            start_block=start_block,
            end_block=end_block,
            processing_duration_in_secs=processing_duration_in_secs,
            db_insertion_duration_in_secs=db_insertion_duration_in_secs,
            outcomes=dict(outcomes),
            first_unapplied_block=self.first_unapplied_block(),
        )

    def is_auctionhouse_record(self, record: Dict[str, Any]) -> bool:
        # Hosts that pre-filter by contract omit the address
        address = record.get("address")
        if not isinstance(address, str):
            return True
        return standardize_address(address) in self.contract_addresses

    def parse_records(
        self, records: List[Dict[str, Any]], outcomes: Counter
    ) -> List[AuctionhouseEvent]:
        events = []
        for record in records:
            if not self.is_auctionhouse_record(record):
                continue
            try:
                events.append(parse_event(record))
            except MalformedEventError as e:
                event_name = e.event_name or "unknown"
                logging.error(
                    "[Parser] Skipping malformed event",
                    extra={
                        "processor_name": self.name(),
                        "event_name": event_name,
                        "transaction_hash": record.get("transactionHash"),
                        "log_index": record.get("logIndex"),
                        "block_number": record.get("blockNumber"),
                        "error": str(e),
                        "service_type": PROCESSOR_SERVICE_TYPE,
                    },
                )
                MALFORMED_EVENTS_COUNTER.labels(
                    processor_name=self.name(), event_name=event_name
                ).inc()
                outcomes[ApplyOutcome.MALFORMED.value] += 1
        return events

    def is_halted(self, listing_id: int) -> bool:
        with self._halted_lock:
            return listing_id in self.halted_listings

    def first_unapplied_block(self) -> Optional[int]:
        with self._halted_lock:
            return min(self.halted_listings.values(), default=None)

    def halt_listing(self, error: OutOfOrderEventError) -> None:
        with self._halted_lock:
            self.halted_listings.setdefault(error.listing_id, error.event_block)
        HALTED_LISTINGS_COUNTER.labels(processor_name=self.name()).inc()
        logging.error(
            "[Auctionhouse] Out of order event; halting listing",
            extra={
                "processor_name": self.name(),
                "listing_id": error.listing_id,
                "event_block": error.event_block,
                "updated_at_block": error.updated_at_block,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )

    def apply_partition(self, events: List[AuctionhouseEvent]) -> Counter:
        """Applies one listing's events in order. Database errors fail the whole batch."""
        outcomes: Counter = Counter()
        for event in events:
            listing_id = getattr(event, "listing_id", None)
            if listing_id is not None and self.is_halted(listing_id):
                outcomes[ApplyOutcome.HALTED.value] += 1
                continue
            try:
                outcome = self.store.apply_event(event)
            except OutOfOrderEventError as e:
                self.halt_listing(e)
                outcome = ApplyOutcome.OUT_OF_ORDER
            outcomes[outcome.value] += 1
        return outcomes
