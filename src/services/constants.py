"""
Constants and shared data for cycle stage services.
"""
import os
from typing import Dict, List, Optional, Tuple

from src.models.cycle import CycleType
from src.models.milestone import MilestoneSpec

# Number of days a completed milestone still counts as "recent" when no
# milestone is in progress.
RECENT_MILESTONE_WINDOW_DAYS = int(os.environ.get("STAGE_RECENCY_WINDOW_DAYS", "3"))

# Tips surfaced with a resolved stage
MAX_STAGE_TIPS = 3

# Tips derived from free-text details when a catalog entry has none
MAX_DERIVED_TIPS = 6

DEFAULT_CYCLE_LENGTH = 28

# Raw cycle type spellings (after lowercasing and mapping -/space to _)
CYCLE_TYPE_ALIASES: Dict[str, CycleType] = {
    "ivf": CycleType.IVF_FRESH,
    "ivf_fresh": CycleType.IVF_FRESH,
    "fresh_ivf": CycleType.IVF_FRESH,
    "ivf_frozen": CycleType.IVF_FROZEN,
    "frozen_ivf": CycleType.IVF_FROZEN,
    "fet": CycleType.IVF_FROZEN,
    "iui": CycleType.IUI,
    "egg_freezing": CycleType.EGG_FREEZING,
    "egg_freez": CycleType.EGG_FREEZING,
}

# (long label, short label, estimated length in days)
CYCLE_TYPE_META: Dict[str, Tuple[str, str, int]] = {
    CycleType.IVF_FRESH.value: ("IVF Cycle", "IVF cycle", 28),
    CycleType.IVF_FROZEN.value: ("FET", "FET", 21),
    CycleType.IUI.value: ("IUI Cycle", "IUI cycle", 14),
    CycleType.EGG_FREEZING.value: ("Egg Freezing Cycle", "Egg freezing", 21),
    "monitoring": ("Monitoring Cycle", "Monitoring cycle", 14),
    "natural": ("Natural Cycle", "Natural cycle", 28),
}

# Prefixes stripped from raw milestone types before display, longest first
MILESTONE_TITLE_PREFIXES: Tuple[str, ...] = (
    "egg-freezing-",
    "ivf-frozen-",
    "ivf-fresh-",
    "ivf-",
    "fet-",
    "iui-",
)

# Note bodies written by the system rather than the user
AUTO_NOTE_PREFIXES: Tuple[str, ...] = (
    "auto-generated",
    "created from cycle template",
    "expected based on cycle template",
)

AUTO_NOTE_TEXT = "Created from cycle template"

# Known display titles mapped to stable milestone type identifiers
MILESTONE_TYPE_ALIASES: Dict[str, str] = {
    "stimulation start": "stimulation-injections-start",
    "egg collection": "egg-retrieval",
    "fresh embryo transfer": "embryo-transfer",
    "frozen embryo transfer": "embryo-transfer",
    "pregnancy blood test (beta)": "pregnancy-blood-test",
    "pregnancy test": "pregnancy-blood-test",
    "insemination": "insemination-iui",
    "lining scan": "monitoring-ultrasound",
}

def _timeline(*rows: Tuple[str, int, Optional[int]]) -> List[MilestoneSpec]:
    return [MilestoneSpec(name=name, day_start=start, day_end=end) for name, start, end in rows]

# Expected milestone order per cycle type. The day-based stage estimate and
# the predictive "usually day N" text both read from this table; add a key
# here to support a new cycle type.
MILESTONE_TIMELINES: Dict[str, List[MilestoneSpec]] = {
    CycleType.IVF_FRESH.value: _timeline(
        ("Cycle day 1", 1, 1),
        ("Baseline blood test", 2, 2),
        ("Stimulation injections start", 3, 3),
        ("Monitoring blood test", 6, 6),
        ("Monitoring ultrasound", 6, 6),
        ("Antagonist injections start", 7, 7),
        ("Trigger injection", 11, 11),
        ("Egg retrieval", 13, 13),
        ("Embryo transfer", 19, 19),
        ("Embryos frozen", 20, 20),
        ("Pregnancy blood test", 28, 28),
    ),
    CycleType.IVF_FROZEN.value: _timeline(
        ("Cycle day 1", 1, 1),
        ("Monitoring blood test", 8, 8),
        ("Monitoring ultrasound", 10, 10),
        ("Ovulation detected", 14, 14),
        ("Medication starts", 14, 14),
        ("Embryo transfer", 19, 19),
        ("Pregnancy blood test", 29, 29),
    ),
    CycleType.IUI.value: _timeline(
        ("Cycle day 1", 1, 1),
        ("Baseline blood test", 2, 2),
        ("Monitoring blood test", 7, 7),
        ("Monitoring ultrasound", 7, 7),
        ("Trigger injection", 11, 11),
        ("Insemination (IUI)", 13, 13),
        ("Medication starts", 14, 14),
        ("Pregnancy blood test", 27, 27),
    ),
    CycleType.EGG_FREEZING.value: _timeline(
        ("Cycle day 1", 1, 1),
        ("Baseline blood test", 2, 2),
        ("Stimulation injections start", 2, 2),
        ("Monitoring blood test", 6, 6),
        ("Monitoring ultrasound", 6, 6),
        ("Antagonist injections start", 7, 7),
        ("Trigger injection", 11, 11),
        ("Egg retrieval", 13, 13),
        ("Eggs frozen", 13, 13),
    ),
}

# Used for cycle types without a dedicated timeline
DEFAULT_MILESTONE_TIMELINE: List[MilestoneSpec] = _timeline(
    ("Cycle day 1", 1, 1),
    ("Baseline blood test", 2, 2),
    ("Stimulation injections start", 3, 3),
    ("Monitoring blood test", 6, 6),
    ("Monitoring ultrasound", 6, 6),
    ("Antagonist injections start", 7, 7),
    ("Trigger injection", 11, 11),
    ("Egg retrieval", 13, 13),
    ("Fertilisation report", 14, 14),
    ("Embryo development update", 16, 18),
    ("Embryo transfer", 19, 19),
    ("Embryos frozen", 20, 20),
    ("Pregnancy blood test", 28, 28),
)
