"""
Centralized client initialization module.

This module provides lazy-loaded shared clients for the Lambda handlers.
Services never import these; handlers pass them in explicitly.
"""
import os
from aws_lambda_powertools import Logger
from src.utils.dynamo import get_dynamo
from src.services.tracker import TrackerRepository
from src.services.reference import (
    DynamoStageReferenceLoader,
    StageReferenceRepository,
    load_bundled_reference_data
)

logger = Logger()

# Initialize shared clients (lazy loading)
_tracker = None
_references = None

def get_tracker():
    """Get or create the cycle and milestone repository."""
    global _tracker
    if _tracker is None:
        _tracker = TrackerRepository(get_dynamo())
    return _tracker

def get_references():
    """
    Get or create the stage reference repository.

    Reference data is read from DynamoDB when STAGE_REFERENCE_SOURCE is
    "dynamo", otherwise from the bundled dataset.
    """
    global _references
    if _references is None:
        source = os.environ.get('STAGE_REFERENCE_SOURCE', 'bundled').lower()
        if source == 'dynamo':
            loader = DynamoStageReferenceLoader(get_dynamo())
        else:
            loader = load_bundled_reference_data
        logger.debug("Creating stage reference repository", extra={"source": source})
        _references = StageReferenceRepository(loader)
    return _references

def get_clients():
    """Get all required clients."""
    return get_tracker(), get_references()
