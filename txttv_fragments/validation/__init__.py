"""Four-layer validation for assembled policy fragments."""

from .document import FragmentDocument
from .layers import check_schema, check_security, check_structure, check_well_formed
from .models import (
    LAYER_ORDER,
    SCHEMA,
    SECURITY,
    STRUCTURE,
    WELL_FORMED,
    LayerResult,
    ValidationReport,
    reduce_layers,
)
from .validator import FragmentValidator

__all__ = [
    "LAYER_ORDER",
    "SCHEMA",
    "SECURITY",
    "STRUCTURE",
    "WELL_FORMED",
    "FragmentDocument",
    "FragmentValidator",
    "LayerResult",
    "ValidationReport",
    "check_schema",
    "check_security",
    "check_structure",
    "check_well_formed",
    "reduce_layers",
]
