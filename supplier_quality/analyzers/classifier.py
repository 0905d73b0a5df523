"""
Heuristic classification of incident comments.

Three independent, total derivations per record:
    1. Severity - first matching keyword group, defaulting to High
    2. Program - deterministic pick from the inspection program catalog
    3. Defect type - first matching keyword label, else a rotating generic label

These are rule-based labels, not verified defect classifications. Nothing
here is random: the same inputs always produce the same labels.
"""

import re
from functools import lru_cache

from supplier_quality.models.schemas import PROGRAM_CATALOG, Program, Severity

# Export comments are often prefixed with the record kind.
_RECORD_PREFIX = re.compile(r"^\s*(?:incident|return)\s*:\s*", re.IGNORECASE)


# =============================================================================
# Keyword Matching
# =============================================================================

@lru_cache(maxsize=256)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Anchor at a word start so "dent" does not fire inside "incident".
    return re.compile(r"\b" + re.escape(keyword))


def normalize_comment(comment: str) -> str:
    """Lowercase a comment and strip a leading ``Incident:``/``Return:`` label."""
    return _RECORD_PREFIX.sub("", comment or "").strip().lower()


def contains_keyword(text: str, keyword: str) -> bool:
    """Whether ``keyword`` starts a word in an already-normalized ``text``."""
    return _keyword_pattern(keyword).search(text) is not None


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    """Whether any keyword starts a word in ``text``."""
    return any(contains_keyword(text, keyword) for keyword in keywords)


# =============================================================================
# Severity
# =============================================================================

# Evaluated in this order; the first group with a hit wins.
SEVERITY_KEYWORDS: tuple[tuple[Severity, tuple[str, ...]], ...] = (
    (Severity.CRITICAL, (
        "critical", "severe", "complete", "total", "broken",
        "shattered", "mold", "water damage",
    )),
    (Severity.HIGH, (
        "major", "significant", "large", "multiple", "extensive",
        "crack", "chip",
    )),
    (Severity.MEDIUM, ("minor", "small", "scratch", "dent", "mark")),
)

# Unmatched comments are flagged rather than under-reported.
DEFAULT_SEVERITY = Severity.HIGH


def classify_severity(comment: str) -> Severity:
    """Map a comment onto Critical/High/Medium, defaulting to High."""
    text = normalize_comment(comment)
    for severity, keywords in SEVERITY_KEYWORDS:
        if contains_any(text, keywords):
            return severity
    return DEFAULT_SEVERITY


# =============================================================================
# Program Assignment
# =============================================================================

def string_hash(text: str) -> int:
    """
    31-multiplier rolling hash in signed 32-bit arithmetic, made non-negative.

    Presentation heuristic only; used wherever a stable pseudo-random pick is
    needed so repeated builds produce identical output.
    """
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return abs(value)


def program_pool_size(incident_count: float) -> int:
    """How many catalog programs a product may draw from."""
    if incident_count < 3:
        return 6
    if incident_count < 5:
        return 9
    return len(PROGRAM_CATALOG)


def assign_program(
    delivery_date: str,
    incident_flag: str,
    index: int,
    incident_count: float = 0,
) -> Program:
    """
    Pick an inspection program for the ``index``-th evidence item.

    The export has no program column; this spreads a product's evidence
    across plausible channels. Thin evidence draws from a smaller pool.
    """
    pool = program_pool_size(incident_count)
    slot = (string_hash(f"{delivery_date}{incident_flag}") + index) % pool
    return PROGRAM_CATALOG[slot]


# =============================================================================
# Defect Type
# =============================================================================

# Priority ordered; specific labels come before the catch-all terms.
DEFECT_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("crack", "Crack"),
    ("chip", "Chip"),
    ("scratch", "Scratch"),
    ("dent", "Dent"),
    ("broken", "Broken"),
    ("shatter", "Shattered"),
    ("splinter", "Splinter"),
    ("stain", "Stain"),
    ("odor", "Odor"),
    ("smell", "Odor"),
    ("tear", "Tear"),
    ("rip", "Rip"),
    ("warp", "Warp"),
    ("misalign", "Misalignment"),
    ("missing", "Missing Parts"),
    ("loose", "Loose"),
    ("peel", "Peeling Finish"),
    ("discolor", "Discoloration"),
    ("mold", "Mold"),
    ("water", "Water Damage"),
    ("damage", "Damage"),
    ("defect", "Defect"),
)

GENERIC_DEFECT_LABELS: tuple[str, ...] = (
    "Surface Damage",
    "Transit Damage",
    "Finish Defect",
    "Structural Damage",
    "Packaging Damage",
    "Assembly Issue",
)


def extract_defect_type(comment: str, index: int = 0) -> str:
    """
    Label the defect described by a comment.

    Falls back to a generic label chosen by the row position so a product's
    evidence does not collapse onto one tag when comments say nothing.
    """
    text = normalize_comment(comment)
    for keyword, label in DEFECT_KEYWORDS:
        if contains_keyword(text, keyword):
            return label
    return GENERIC_DEFECT_LABELS[index % len(GENERIC_DEFECT_LABELS)]
