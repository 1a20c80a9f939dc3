import yaml
from utils.models.general_models import NextBlockToProcess
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from sqlalchemy.exc import SQLAlchemyError
from utils.session import Session
from typing import List, Optional
import logging


class ProcessorConfig(BaseModel):
    type: str
    # Number of listing partitions applied concurrently within one batch
    num_concurrent_processing_tasks: int = 10


class AuctionhouseConfig(ProcessorConfig):
    marketplace_contract_address: str
    # Escrow events are emitted by the settlement library, which may log under its own address
    settlement_contract_address: Optional[str] = None


class ServerConfig(BaseModel):
    processor_config: AuctionhouseConfig
    # Newline delimited JSON files of decoded event logs, read in order
    event_source_paths: List[str]
    postgres_connection_string: str
    starting_block: Optional[int] = None
    ending_block: Optional[int] = None
    # Upper bound on records per batch; a block is never split across batches
    batch_size: int = 500


class Config(BaseSettings):
    health_check_port: int
    server_config: ServerConfig

    model_config = SettingsConfigDict(env_nested_delimiter="__")

    # change order of priority of settings sources such that environment variables take precedence over config file settings
    # inspired by https://docs.pydantic.dev/latest/concepts/pydantic_settings/#changing-priority
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings, file_secret_settings

    @classmethod
    def from_yaml_file(cls, path: str):
        with open(path, "r") as file:
            config = yaml.safe_load(file)

        return cls(**config)

    def get_starting_block(self, processor_name: str) -> int:
        next_block_to_process = None

        try:
            with Session() as session, session.begin():
                next_block_to_process_from_db = session.get(
                    NextBlockToProcess, processor_name
                )
                if next_block_to_process_from_db is not None:
                    next_block_to_process = next_block_to_process_from_db.next_block
        except SQLAlchemyError:
            logging.warning(
                "[Config] Database error when getting NextBlockToProcess. Skipping...",
                extra={"processor_name": processor_name},
            )

        # By default, if nothing is set, start from 0
        starting_block = 0
        if self.server_config.starting_block is not None:
            logging.info("[Config] Starting from config starting_block")
            starting_block = self.server_config.starting_block
        elif next_block_to_process is not None:
            logging.info("[Config] Starting from block from db")
            starting_block = next_block_to_process
        else:
            logging.info("[Config] Starting from block 0")

        return starting_block
