from utils.config import Config
from utils.event_source import (
    JsonLinesEventSource,
    PROCESSOR_SERVICE_TYPE,
    block_number_of,
)
from utils.events_processor import EventsProcessor, ProcessingResult
from utils.models.general_models import Base
from utils.metrics import LATEST_PROCESSED_BLOCK
from utils.session import init_engine
from typing import Any, Dict, List, Optional
from prometheus_client.twisted import MetricsResource
from twisted.web.server import Site
from twisted.web.resource import Resource
from twisted.internet import reactor
import threading
from time import perf_counter
from utils.processor_name import ProcessorName
from processors.auctionhouse.processor import AuctionhouseProcessor
import logging
import queue
import os

# How large the fetcher queue should be
FETCHER_QUEUE_SIZE = 50

# Marks the end of the event stream on the queue
END_OF_STREAM = None


# Reads block-bounded batches from the event source into the channel.
# When the source is exhausted (or ending_block is reached) the end marker is sent so the
# consumer can drain what is left and exit.
def producer(
    q: queue.Queue,
    event_source: JsonLinesEventSource,
    processor_name: str,
):
    last_insertion_time = perf_counter()
    try:
        for batch in event_source.batches():
            start_block = block_number_of(batch[0])
            end_block = block_number_of(batch[-1])
            logging.info(
                "[Parser] Read event batch. Sending events to channel.",
                extra={
                    "processor_name": processor_name,
                    "start_block": start_block,
                    "end_block": end_block,
                    "num_of_events": len(batch),
                    "channel_size": q.qsize(),
                    "channel_recv_latency_in_secs": str(
                        format(perf_counter() - last_insertion_time, ".8f")
                    ),
                    "step": "1",
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
            q.put(batch)
            last_insertion_time = perf_counter()
    except Exception:
        logging.exception(
            "[Parser] Error reading event source",
            extra={
                "processor_name": processor_name,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )
        os._exit(1)

    logging.info(
        "[Parser] Event source exhausted",
        extra={
            "processor_name": processor_name,
            "service_type": PROCESSOR_SERVICE_TYPE,
        },
    )
    q.put(END_OF_STREAM)


# This is the consumer side of the channel.
# Batches are applied one at a time: a listing's events may span batches, and each
# listing must see its events in chain order. Concurrency happens inside a batch,
# across listings. Any batch failure crashes the process so it restarts from the
# last checkpoint.
def consumer(
    q: queue.Queue,
    processor: EventsProcessor,
    starting_block: int,
    processor_name: str,
):
    next_block = starting_block

    while True:
        batch: Optional[List[Dict[str, Any]]] = q.get()
        if batch is END_OF_STREAM:
            logging.info(
                "[Parser] Channel closed; stream ended.",
                extra={
                    "processor_name": processor_name,
                    "next_block": next_block,
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
            return

        start_block = block_number_of(batch[0])
        end_block = block_number_of(batch[-1])
        if start_block < next_block:
            logging.warning(
                "[Parser] Received batch overlapping processed blocks",
                extra={
                    "processor_name": processor_name,
                    "next_block": next_block,
                    "start_block": start_block,
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )

        start_time = perf_counter()
        try:
            result = processor.process_events(batch, start_block, end_block)
        except Exception:
            logging.exception(
                "[Parser] Error processing event batch",
                extra={
                    "processor_name": processor_name,
                    "start_block": start_block,
                    "end_block": end_block,
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
            os._exit(1)

        log_processing_result(processor_name, result, len(batch))

        last_safe_block = result.last_safe_block
        if last_safe_block < end_block:
            logging.error(
                "[Parser] Halted listings have unapplied events; holding checkpoint",
                extra={
                    "processor_name": processor_name,
                    "end_block": end_block,
                    "first_unapplied_block": result.first_unapplied_block,
                    "service_type": PROCESSOR_SERVICE_TYPE,
                },
            )
        processor.update_last_processed_block(last_safe_block)
        next_block = end_block + 1
        LATEST_PROCESSED_BLOCK.labels(processor_name=processor_name).set(
            last_safe_block
        )
        logging.info(
            "[Parser] Finished processing event batch",
            extra={
                "processor_name": processor_name,
                "start_block": start_block,
                "end_block": end_block,
                "num_of_events": len(batch),
                "outcomes": result.outcomes,
                "duration_in_secs": str(format(perf_counter() - start_time, ".8f")),
                "step": "3",
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )


def log_processing_result(
    processor_name: str, result: ProcessingResult, num_of_events: int
) -> None:
    processing_duration_in_secs = format(result.processing_duration_in_secs, ".8f")
    db_insertion_duration_in_secs = format(result.db_insertion_duration_in_secs, ".8f")
    logging.info(
        "[Parser] Processor finished processing one batch of events",
        extra={
            "processor_name": processor_name,
            "start_block": result.start_block,
            "end_block": result.end_block,
            "num_of_events": num_of_events,
            "processing_duration_in_secs": processing_duration_in_secs,
            "db_insertion_duration_in_secs": db_insertion_duration_in_secs,
            "duration_in_secs": format(
                result.processing_duration_in_secs
                + result.db_insertion_duration_in_secs,
                ".8f",
            ),
            "step": "2",
            "service_type": PROCESSOR_SERVICE_TYPE,
        },
    )


def build_processor(config: Config) -> EventsProcessor:
    processor_config = config.server_config.processor_config
    match processor_config.type:
        case ProcessorName.AUCTIONHOUSE_PROCESSOR.value:
            return AuctionhouseProcessor(processor_config)
        case _:
            raise Exception(
                "Invalid processor name"
                "\n[ERROR]: The specified processor name was invalid or not found.\n"
                "         - If you are adding a processor, add it to the ProcessorName enum in utils/processor_name.py.\n"
                "         - Ensure build_processor in utils/worker.py uses the new enum value.\n"
            )


class IndexerProcessorServer:
    config: Config
    processor: EventsProcessor

    def __init__(self, config: Config):
        self.config = config
        logging.info(
            "[Parser] Kicking off",
            extra={
                "processor_name": self.config.server_config.processor_config.type,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )
        self.processor = build_processor(config)

    def run(self):
        processor_name = self.processor.name()

        # Run DB migrations
        logging.info(
            "[Parser] Initializing DB tables",
            extra={
                "processor_name": processor_name,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )
        self.init_db_tables(self.processor.schema())
        logging.info(
            "[Parser] DB tables initialized",
            extra={
                "processor_name": processor_name,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )

        self.start_health_and_monitoring_ports()

        starting_block = self.config.get_starting_block(processor_name)
        ending_block = self.config.server_config.ending_block
        event_source = JsonLinesEventSource(
            self.config.server_config.event_source_paths,
            batch_size=self.config.server_config.batch_size,
            starting_block=starting_block,
            ending_block=ending_block,
        )

        logging.info(
            "[Parser] Starting fetcher task",
            extra={
                "processor_name": processor_name,
                "event_source_paths": self.config.server_config.event_source_paths,
                "start_block": starting_block,
                "end_block": ending_block,
                "service_type": PROCESSOR_SERVICE_TYPE,
            },
        )

        q: queue.Queue = queue.Queue(FETCHER_QUEUE_SIZE)
        producer_thread = threading.Thread(
            target=producer,
            daemon=True,
            args=(q, event_source, processor_name),
        )
        producer_thread.start()

        consumer_thread = threading.Thread(
            target=consumer,
            daemon=True,
            args=(q, self.processor, starting_block, processor_name),
        )
        consumer_thread.start()

        producer_thread.join()
        consumer_thread.join()

    def init_db_tables(self, schema_name: str) -> None:
        engine = init_engine(
            self.config.server_config.postgres_connection_string, schema_name
        )
        Base.metadata.create_all(engine, checkfirst=True)

    def start_health_and_monitoring_ports(self) -> None:
        # Start the health + metrics server.
        def start_health_server() -> None:
            # The kubelet polls this to decide when to restart an unresponsive container.
            root = Resource()
            root.putChild(b"metrics", MetricsResource())  # type: ignore

            class ServerOk(Resource):
                isLeaf = True

                def render_GET(self, request):
                    return b"ok"

            root.putChild(b"", ServerOk())  # type: ignore
            factory = Site(root)
            reactor.listenTCP(self.config.health_check_port, factory)  # type: ignore
            reactor.run(installSignalHandlers=False)  # type: ignore

        t = threading.Thread(target=start_health_server, daemon=True)
        t.start()
