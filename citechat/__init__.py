"""Top-level package for the CiteChat retrieval-augmented assistant."""

from .config import ChatSettings, ConfigManager, get_user_config_dir  # noqa: F401
from .logging import setup_logging  # noqa: F401
