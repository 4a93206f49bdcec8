"""Load and validate conversion settings for TxtTV fragment builds.

This subpackage parses the project's ``fragments.yaml`` file, merges it with
built-in defaults (page range 100-999, 2000-character content ceiling,
256 KB fragment ceiling), and produces a :class:`ConvertConfig` that the batch
orchestrator consumes. The primary entry point is :func:`load_convert_config`.

Examples
--------
>>> from pathlib import Path
>>> from txttv_fragments.config import load_convert_config
>>> config = load_convert_config(Path("config/fragments.yaml"))  # doctest: +SKIP
>>> config.page_range()[:2]  # doctest: +SKIP
[100, 101]
"""

from .helpers import parse_page_selection
from .loader import check_config, load_convert_config
from .models import ConfigError, ConvertConfig

__all__ = [
    "ConfigError",
    "ConvertConfig",
    "check_config",
    "load_convert_config",
    "parse_page_selection",
]
