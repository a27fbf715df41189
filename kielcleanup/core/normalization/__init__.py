"""Record normalization for kielcleanup.

Normalization turns loosely typed archive metadata into structured fields and
entities: composite values are split into labeled sub-fields, authority
markers are moved out of text into references, and raw name fields become
person/corporate entities.

Notes:
- All transforms are deterministic and perform no I/O.
- Unrecognized input is skipped, never raised.
"""

from .authority import AuthorityParts, MarkerKind, extract_authority
from .normalizer import NormalizationReport, normalize_record, split_composite_fields
from .reclassify import ReclassificationResult, normalize_authority_fields, reclassify_entities
from .splitter import split_composite, split_tokens, value_after_colon

__all__ = [
    "AuthorityParts",
    "MarkerKind",
    "extract_authority",
    "NormalizationReport",
    "normalize_record",
    "split_composite_fields",
    "ReclassificationResult",
    "normalize_authority_fields",
    "reclassify_entities",
    "split_composite",
    "split_tokens",
    "value_after_colon",
]
