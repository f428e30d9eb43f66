from .registry import register_handler, get_handler, known_job_types

# Importing the handler modules registers them.
from . import refresh as _refresh  # noqa: F401

__all__ = [
    "register_handler",
    "get_handler",
    "known_job_types",
]
