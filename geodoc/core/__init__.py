from geodoc.core.utils.checks import ifnone
from geodoc.core.config import Config, CoreConfig, CoreSettings
from geodoc.core.logging.logger import get_logger, setup_logger

setup_logger()  # Initialize the default logger

from geodoc.core.base import GeoDoc, GeoDocMeta

__all__ = [
    "Config",
    "CoreConfig",
    "CoreSettings",
    "GeoDoc",
    "GeoDocMeta",
    "get_logger",
    "ifnone",
    "setup_logger",
]
