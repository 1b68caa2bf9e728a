"""Browser session provider: page loading behind a small interface."""

from .page import PageSnapshot
from .session import (
    BrowserSession,
    PlaywrightSession,
    StaticSession,
    open_session,
    prepare_page,
)
