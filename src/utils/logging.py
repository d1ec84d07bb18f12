"""Shared logging configuration."""
import os
import sys
import json
import traceback
from typing import Optional
from aws_lambda_powertools import Logger

def format_exception(exc_info=True) -> Optional[str]:
    """
    Format an exception traceback as a single log-friendly line.

    Args:
        exc_info: Exception tuple, or True for the exception being handled

    Returns:
        Traceback lines joined with " | ", None when there is no exception
    """
    if exc_info is True:
        exc_info = sys.exc_info()
    if not isinstance(exc_info, tuple) or exc_info[0] is None:
        return None

    lines = "".join(traceback.format_exception(*exc_info)).splitlines()
    return " | ".join(line.strip() for line in lines if line.strip())

class SingleLineLogger(Logger):
    """Logger that writes exception tracebacks on a single line."""

    def exception(self, message, *args, **kwargs):
        extra = kwargs.pop('extra', None) or {}
        extra['exception'] = format_exception(kwargs.pop('exc_info', True))
        super().exception(message, *args, exc_info=False, extra=extra, **kwargs)

logger = SingleLineLogger(
    service="cycle_stage_tracker",
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    log_uncaught_exceptions=True,
    json_serializer=json.dumps,
    use_rfc3339=True
)

logger.append_keys(
    region=os.environ.get('AWS_REGION'),
    function=os.environ.get('AWS_LAMBDA_FUNCTION_NAME'),
    version=os.environ.get('AWS_LAMBDA_FUNCTION_VERSION')
)
