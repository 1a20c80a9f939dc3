from enum import Enum


class ProcessorName(Enum):
    AUCTIONHOUSE_PROCESSOR = "auctionhouse_processor"
