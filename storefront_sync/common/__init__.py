# Common utilities
from .cancellation import CancellationToken
from .config_loader import (
    PipelineSettings,
    load_config,
    load_pipeline_settings,
    load_selectors,
)
from .log_config import setup_logging
from .text_utils import clean_text, short_hash, slugify, strip_html
