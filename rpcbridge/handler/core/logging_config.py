from typing import Optional

from rpcbridge.common.core.logging_config import setup_logging as common_setup_logging


def setup_logging(config_path: Optional[str] = None):
    """
    Load the YAML config and initialize logging.
    Defaults to LOG_CONFIG_PATH from the handler config.
    """
    if config_path is None:
        from ..config import config

        config_path = config.LOG_CONFIG_PATH
    common_setup_logging(config_path)
