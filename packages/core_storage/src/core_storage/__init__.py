from .artifact_files import ArtifactLayout, artifact_filename

__all__ = ["ArtifactLayout", "artifact_filename"]
