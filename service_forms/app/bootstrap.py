"""
Engine initialisation.
"""

from typing import Optional

from shared.config import FormsConfig, get_config
from shared.logging import configure_logging, get_logger


def init_engine(config: Optional[FormsConfig] = None) -> FormsConfig:
    """Load configuration and configure structured logging."""
    config = config or get_config()
    configure_logging(config.service_name, config.log_level)

    logger = get_logger(f"{config.service_name}.bootstrap")
    logger.info(
        "Form constraint engine initialised",
        env=config.env,
        max_condition_depth=config.max_condition_depth,
        log_evaluations=config.log_evaluations
    )
    return config
