from .metadata import StageMetadata

__all__ = ["StageMetadata"]
