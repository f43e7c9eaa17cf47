"""
Regulatory Code Taxonomy for the Violation Classifier

The model emits one probability per class. Classes come in pairs per
regulatory code: BEFORE (violation present) followed by AFTER (violation
resolved), so class index i is BEFORE iff i is even and its AFTER pair is i+1.
"""

from typing import Dict, List, NamedTuple, Optional, Tuple
from enum import Enum


class Phase(str, Enum):
    """Inspection phase for a regulatory code."""
    BEFORE = "Before"  # violation present
    AFTER = "After"    # violation resolved / absent


class ViolationClass(NamedTuple):
    """One model output class."""
    code: str
    phase: Phase

    @property
    def is_violation(self) -> bool:
        return self.phase is Phase.BEFORE

    @property
    def label(self) -> str:
        if self.is_violation:
            return f"Violation - {self.code}"
        return f"No Violation - {self.code}"


# =============================================================================
# REGULATORY CODES (model training order)
# =============================================================================

REGULATORY_CODES: List[str] = [
    "OSHA 1910.37(a)(3)",                      # 0/1: machine guarding
    "OSHA 1910.303(e)(1)",                     # 2/3: equipment marking
    "OSHA 1910.303(g)(1)",                     # 4/5: working space
    "OSHA 1910.157(c)(1)",                     # 6/7: fire extinguishers
    "ANSI A13.1 (Pipe Marking)",               # 8/9
    "ANSI Z358.1-2014 (Emergency Equipment)",  # 10/11
]

TAXONOMY: Tuple[ViolationClass, ...] = tuple(
    ViolationClass(code, phase)
    for code in REGULATORY_CODES
    for phase in (Phase.BEFORE, Phase.AFTER)
)

CODE_DESCRIPTIONS: Dict[str, str] = {
    "OSHA 1910.37(a)(3)": (
        "Employers must provide machine guarding for fixed machinery to protect "
        "workers from moving parts."
    ),
    "OSHA 1910.303(e)(1)": (
        "Electrical equipment must be marked with the manufacturer's identification "
        "and rating information."
    ),
    "OSHA 1910.303(g)(1)": (
        "Adequate working space must be maintained around electrical equipment for "
        "safe operation and maintenance."
    ),
    "OSHA 1910.157(c)(1)": (
        "Portable fire extinguishers must be provided, properly mounted, and clearly "
        "identified for quick access."
    ),
    "ANSI A13.1 (Pipe Marking)": (
        "This standard defines requirements for marking and identifying piping "
        "systems using color codes and labels."
    ),
    "ANSI Z358.1-2014 (Emergency Equipment)": (
        "This standard specifies requirements for emergency eyewash and shower "
        "equipment to ensure rapid decontamination."
    ),
}

NO_DESCRIPTION_CAPTION = "No description available."
NO_VIOLATION_CAPTION = "No violation detected."


def describe(code: str, descriptions: Optional[Dict[str, str]] = None) -> str:
    """Human readable description of a regulatory code."""
    if descriptions is None:
        descriptions = CODE_DESCRIPTIONS
    return descriptions.get(code, NO_DESCRIPTION_CAPTION)
