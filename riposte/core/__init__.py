# Core module exports
from riposte.core.config import RiposteOptions, Settings, get_settings
from riposte.core.logging import (
    LoggerRegistry,
    LoggingObserver,
    ReplyObserver,
    bind_context,
    configure_logging,
    dispatch_logger,
    get_logger,
    unbind_context,
)
