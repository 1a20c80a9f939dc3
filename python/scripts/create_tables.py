import argparse

from utils.config import Config
from utils.models.general_models import Base
from utils.session import init_engine
from utils.worker import build_processor

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("-c", "--config", help="Path to config file", required=True)
    args = parser.parse_args()

    config = Config.from_yaml_file(args.config)

    # Building the processor imports its models, registering their tables on Base
    processor = build_processor(config)
    engine = init_engine(
        config.server_config.postgres_connection_string, processor.schema()
    )
    Base.metadata.create_all(engine)
