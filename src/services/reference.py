"""
Stage reference data service.

This module provides the read-only stage catalog used by stage detection and
a repository that loads it from the bundled dataset or DynamoDB. The
repository caches the catalog per instance; callers decide when to reload
it with ``refresh()`` or drop it with ``invalidate()``.

Typical usage:
    repository = StageReferenceRepository()
    catalog = repository.get_catalog()
    entry = catalog.lookup("ivf_fresh", "egg-retrieval")

    # After reference data changes upstream
    repository.invalidate()
"""
import os
import re
import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from aws_lambda_powertools import Logger
from pydantic import ValidationError

from src.models.stage import StageReference
from src.services.constants import MAX_DERIVED_TIPS
from src.services.exceptions import ReferenceDataError
from src.services.utils import cycle_type_key, milestone_key
from src.utils.dynamo import create_reference_pk

logger = Logger()

DEFAULT_REFERENCE_PATH = Path(__file__).resolve().parent.parent / "data" / "stage_reference.json"

ReferenceLoader = Callable[[], List[Dict[str, Any]]]

def derive_tips(text: Optional[str], limit: int = MAX_DERIVED_TIPS) -> List[str]:
    """
    Split free-text stage details into short tips.

    Example:
        >>> derive_tips("Rest well. Drink water.\\nCall the clinic")
        ['Rest well', 'Drink water', 'Call the clinic']
    """
    if not text:
        return []
    tips = [tip.strip() for tip in re.split(r"[.\n]+", text)]
    return [tip for tip in tips if tip][:limit]

class StageCatalog:
    """
    Indexed, read-only view over stage reference entries.

    Entries are matched on (cycle type, milestone type) first, falling back
    to entries without a cycle type, then on stage name. Lookups never raise;
    a missing entry is returned as None.
    """

    def __init__(self, entries: Iterable[Union[StageReference, Dict[str, Any]]] = ()):
        self._entries: List[StageReference] = []
        self._by_milestone: Dict[Tuple[Optional[str], str], StageReference] = {}
        self._by_name: Dict[Tuple[Optional[str], str], StageReference] = {}

        for raw in entries:
            entry = self._coerce(raw)
            if entry is not None:
                self._entries.append(entry)

        # Lower ui_priority wins when several entries share a key
        ordered = sorted(
            self._entries,
            key=lambda e: e.ui_priority if e.ui_priority is not None else float("inf")
        )
        for entry in ordered:
            scope = cycle_type_key(entry.cycle_type) if entry.cycle_type else None
            self._by_milestone.setdefault((scope, milestone_key(entry.milestone_type)), entry)
            self._by_name.setdefault((scope, milestone_key(entry.name)), entry)

    @staticmethod
    def _coerce(raw: Union[StageReference, Dict[str, Any]]) -> Optional[StageReference]:
        try:
            entry = raw if isinstance(raw, StageReference) else StageReference.model_validate(raw)
        except ValidationError as e:
            logger.warning("Skipping malformed stage reference entry", extra={
                "entry": raw if isinstance(raw, dict) else repr(raw),
                "error": str(e)
            })
            return None

        if not entry.tips and entry.details:
            entry = entry.model_copy(update={"tips": derive_tips(entry.details)})
        return entry

    @classmethod
    def coerce(cls, reference_data: Union["StageCatalog", Iterable[Any], None]) -> "StageCatalog":
        """Return reference_data as a catalog, building one if needed."""
        if isinstance(reference_data, StageCatalog):
            return reference_data
        return cls(reference_data or ())

    @property
    def entries(self) -> List[StageReference]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[StageReference]:
        return iter(self._entries)

    def lookup(
        self,
        cycle_type: Optional[str],
        milestone_type: Optional[str],
        title: Optional[str] = None
    ) -> Optional[StageReference]:
        """
        Find the stage entry for a milestone.

        Args:
            cycle_type: Raw cycle type of the cycle
            milestone_type: Milestone type identifier
            title: Optional milestone title tried after the type

        Returns:
            Matching entry or None
        """
        scope = cycle_type_key(cycle_type) or None
        keys = [milestone_key(value) for value in (milestone_type, title) if value]

        for index in (self._by_milestone, self._by_name):
            for key in keys:
                if not key:
                    continue
                entry = index.get((scope, key)) or index.get((None, key))
                if entry is not None:
                    return entry
        return None

def load_bundled_reference_data(path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """
    Load stage reference entries from a JSON file.

    Args:
        path: File to read; defaults to ``STAGE_REFERENCE_PATH`` or the
            dataset shipped with the package

    Returns:
        List of raw entry dictionaries

    Raises:
        ReferenceDataError: If the file cannot be read or is not a JSON list
    """
    path = Path(path or os.environ.get("STAGE_REFERENCE_PATH") or DEFAULT_REFERENCE_PATH)
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ReferenceDataError(f"Failed to read stage reference data from {path}: {str(e)}") from e

    if not isinstance(data, list):
        raise ReferenceDataError(f"Stage reference data in {path} must be a list")
    return data

class DynamoStageReferenceLoader:
    """Loads stage reference entries stored in the tracker table."""

    def __init__(self, dynamo):
        self.dynamo = dynamo

    def __call__(self) -> List[Dict[str, Any]]:
        items = self.dynamo.query_items(
            partition_key="PK",
            partition_value=create_reference_pk()
        )
        return [
            {k: v for k, v in item.items() if k not in ("PK", "SK")}
            for item in items
            if item.get("SK", "").startswith("STAGE#")
        ]

class StageReferenceRepository:
    """Cached access to stage reference data."""

    def __init__(self, loader: Optional[ReferenceLoader] = None):
        """
        Initialize the repository.

        Args:
            loader: Callable returning raw entries; defaults to the bundled dataset
        """
        self._loader = loader or load_bundled_reference_data
        self._catalog: Optional[StageCatalog] = None

    @property
    def is_loaded(self) -> bool:
        return self._catalog is not None

    def refresh(self) -> StageCatalog:
        """
        Reload reference data from the loader and replace the cached catalog.

        Raises:
            ReferenceDataError: If the loader fails; the previous catalog is kept
        """
        try:
            entries = self._loader()
        except ReferenceDataError:
            logger.error("Stage reference data could not be loaded")
            raise
        except Exception as e:
            logger.error("Error loading stage reference data", extra={
                "error": str(e),
                "error_type": e.__class__.__name__
            })
            raise ReferenceDataError(f"Failed to load stage reference data: {str(e)}") from e

        self._catalog = StageCatalog(entries)
        logger.info("Loaded stage reference data", extra={
            "entries": len(self._catalog)
        })
        return self._catalog

    def invalidate(self) -> None:
        """Drop the cached catalog; the next read reloads it."""
        self._catalog = None

    def get_catalog(self) -> StageCatalog:
        """Get the cached catalog, loading it on first use."""
        if self._catalog is None:
            return self.refresh()
        return self._catalog

    def get_reference_data(self) -> List[StageReference]:
        """Get all stage reference entries."""
        return self.get_catalog().entries
