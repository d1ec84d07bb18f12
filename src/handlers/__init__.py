"""
Lambda handlers package for AWS Lambda functions.
"""
from .stage import handler as stage_handler

__all__ = ["stage_handler"]
