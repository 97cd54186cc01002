# support_inbox/core/logging/
# ├─ __init__.py            # public API: setup_logging, set_request_id, ...
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings)
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# ├─ filters.py             # RequestIdFilter, RedactFilter (+ contextvar helpers)
# └─ handlers.py            # handler dict factories (console/file)


from .builder import setup_logging, make_dict_config, stop_queue_logging
from .filters import set_request_id, get_request_id, reset_request_id, RequestIdFilter, RedactFilter

__all__ = [
    "setup_logging",
    "make_dict_config",
    "stop_queue_logging",
    "set_request_id",
    "get_request_id",
    "reset_request_id",
    "RequestIdFilter",
    "RedactFilter",
]
