"""Exceptions raised by facetorient."""


class FacetOrientError(Exception):
    """Base exception for facet orientation errors."""
    pass


class MalformedInputError(FacetOrientError, ValueError):
    """Input mesh or candidate subset is unusable (empty, degenerate, bad connectivity)."""
    pass


class AmbiguousGeometryError(FacetOrientError, RuntimeError):
    """Geometry cannot be resolved locally, usually a self-intersecting mesh."""
    pass


class InvalidConfigurationError(FacetOrientError, ValueError):
    """Arguments do not describe a triangle mesh in 3D or a valid ray budget."""
    pass
