import json
import logging

from typing import Any, Dict, Iterable, Iterator, List, Optional

PROCESSOR_SERVICE_TYPE = "processor"


class EventSourceError(Exception):
    pass


def block_number_of(record: Dict[str, Any]) -> int:
    block_number = record.get("blockNumber")
    if isinstance(block_number, bool) or not isinstance(block_number, (int, str)):
        raise EventSourceError(f"Record has no usable blockNumber: {record!r}")
    return int(block_number, 0) if isinstance(block_number, str) else block_number


class JsonLinesEventSource:
    """
    Reads decoded event log records from newline delimited JSON files.

    The log delivery host writes one record per line in canonical chain order
    (block number, then log index). Records are grouped into batches that never
    split a block, so a batch boundary is always a safe checkpoint.
    """

    def __init__(
        self,
        paths: List[str],
        batch_size: int = 500,
        starting_block: int = 0,
        ending_block: Optional[int] = None,
    ):
        self.paths = paths
        self.batch_size = batch_size
        self.starting_block = starting_block
        self.ending_block = ending_block

    def records(self) -> Iterator[Dict[str, Any]]:
        for path in self.paths:
            with open(path, "r") as file:
                for line_no, line in enumerate(file, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        record = json.loads(line)
                    except json.JSONDecodeError:
                        # A line the host could not serialize is an event we cannot parse,
                        # not a reason to stop the stream.
                        logging.error(
                            "[Parser] Skipping undecodable event log line",
                            extra={
                                "path": path,
                                "line_no": line_no,
                                "service_type": PROCESSOR_SERVICE_TYPE,
                            },
                        )
                        continue
                    if not isinstance(record, dict):
                        logging.error(
                            "[Parser] Skipping event log line that is not an object",
                            extra={
                                "path": path,
                                "line_no": line_no,
                                "service_type": PROCESSOR_SERVICE_TYPE,
                            },
                        )
                        continue
                    yield record

    def batches(self) -> Iterator[List[Dict[str, Any]]]:
        return batch_by_block(
            self.records(), self.batch_size, self.starting_block, self.ending_block
        )


def batch_by_block(
    records: Iterable[Dict[str, Any]],
    batch_size: int,
    starting_block: int = 0,
    ending_block: Optional[int] = None,
) -> Iterator[List[Dict[str, Any]]]:
    batch: List[Dict[str, Any]] = []
    for record in records:
        try:
            block_number = block_number_of(record)
        except (EventSourceError, ValueError):
            logging.error(
                "[Parser] Skipping event log without a block number",
                extra={
                    "transaction_hash": record.get("transactionHash"),
                    "log_index": record.get("logIndex"),
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
            continue
        if block_number < starting_block:
            continue
        if ending_block is not None and block_number > ending_block:
            break

        # Only cut between blocks
        if len(batch) >= batch_size and block_number_of(batch[-1]) != block_number:
            yield batch
            batch = []
        batch.append(record)

    if batch:
        yield batch
