"""Source-of-truth clients."""

from dockwatch.sources.sparql import (
    DesiredContainer,
    SourceUnavailable,
    SparqlClient,
)

__all__ = ["DesiredContainer", "SourceUnavailable", "SparqlClient"]
