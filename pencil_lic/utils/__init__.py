"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Pixel-depth normalization and shape contracts (compute)
    - Atomic I/O, image and anchor-point loading (fs)
    - Tone diagnostics (metrics)
    - Timing (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (structure, renderer).

Convenience imports:
    from pencil_lic.utils import fs, compute, validators
    from pencil_lic.utils.logging_config import setup_logging, get_logger
"""

from . import compute
from . import fs
from . import logging_config
from . import metrics
from . import profiler
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    'compute',
    'fs',
    'logging_config',
    'metrics',
    'profiler',
    'validators',
    'setup_logging',
    'get_logger',
    'push_context',
]
