"""Record types produced by the endpoint adapters."""

from .records import (
    AbstractRecord,
    AffiliationRecord,
    AnnotationTerm,
    CitationEdge,
    EntityAnnotation,
    IdConversion,
    ReferenceRecord,
    SectionRecord,
)

__all__ = [
    "AbstractRecord",
    "AffiliationRecord",
    "AnnotationTerm",
    "CitationEdge",
    "EntityAnnotation",
    "IdConversion",
    "ReferenceRecord",
    "SectionRecord",
]
