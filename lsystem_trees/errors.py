"""Exceptions raised while generating and building trees."""


class TreeBuildError(Exception):
    """Base class for every error raised by the tree builder."""


class MalformedParameter(TreeBuildError, ValueError):
    """A build or grammar parameter is outside its allowed range."""


class AttributeSchemaMismatch(TreeBuildError):
    """Geometry chunks with different vertex attribute layouts were merged."""


class AssetDisposedError(TreeBuildError):
    """The asset has been cleared and its buffers are no longer available."""
