"""
Utility functions for the reconciliation tool.

Helpers used by the command line entry point that are not part of loading,
matching or reporting.
"""

import os
import sys
import logging

logger = logging.getLogger(__name__)


def setup_logging(debug=False, log_level='info'):
    """Configure logging for the application.

    The reconciliation trace is written to stdout, so log records only go to
    stderr and, when ``LOG_FILE`` is set, to that file.

    Args:
        debug (bool): Log at DEBUG regardless of ``log_level``
        log_level (str): Level name used when ``debug`` is off

    Returns:
        str or None: Path of the log file, or None when logging to stderr only
    """
    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stderr)]

    log_file = os.getenv('LOG_FILE')
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=format, handlers=handlers)

    return log_file
