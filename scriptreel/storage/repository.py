"""Storage repository for rendered artifacts."""

import json
from pathlib import Path
from typing import Any, Optional

from scriptreel.core.config import Settings
from scriptreel.core.errors import StorageError
from scriptreel.models.schemas import StoredArtifact
from scriptreel.services.interfaces import ArtifactStorage
from scriptreel.utils.io_utils import slugify


class LocalArtifactStore(ArtifactStorage):
    """Repository that keeps artifacts on local disk, each with a JSON metadata sidecar."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the repository.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.storage_path = Path(settings.storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)

    def save(
        self,
        buffer: bytes,
        folder: str,
        identifier: str,
        extension: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> StoredArtifact:
        """
        Save an artifact to storage.

        Args:
            buffer: Artifact bytes
            folder: Logical folder (e.g. "audio", "videos")
            identifier: File stem; slugified before use
            extension: File extension without the dot
            metadata: Optional metadata written next to the file as JSON

        Returns:
            Where the artifact was stored

        Raises:
            StorageError: If the file cannot be written
        """
        folder_slug = slugify(folder) or "artifacts"
        stem = slugify(identifier) or "artifact"
        directory = self.storage_path / folder_slug
        file_path = directory / f"{stem}.{extension.lstrip('.')}"

        self.logger.info(f"Saving artifact: {folder_slug}/{file_path.name} ({len(buffer)} bytes)")

        try:
            directory.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(buffer)
            if metadata is not None:
                with open(file_path.with_suffix(".json"), "w", encoding="utf-8") as f:
                    json.dump(metadata, f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            raise StorageError(f"Failed to store {file_path}: {e}") from e

        artifact = StoredArtifact(
            url=self._url_for(file_path),
            path=str(file_path),
            size_bytes=len(buffer),
            folder=folder_slug,
            identifier=stem,
        )
        self.logger.info(f"Artifact saved to: {artifact.url}")
        return artifact

    def load_metadata(self, folder: str, identifier: str) -> Optional[dict[str, Any]]:
        """
        Load an artifact's metadata sidecar.

        Args:
            folder: Logical folder
            identifier: File stem

        Returns:
            Metadata dict if found, None otherwise
        """
        file_path = self.storage_path / slugify(folder) / f"{slugify(identifier)}.json"
        if not file_path.exists():
            self.logger.warning(f"Metadata not found: {folder}/{identifier}")
            return None

        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def list_artifacts(self, folder: str) -> list[str]:
        """
        List artifact identifiers in a folder.

        Returns:
            Sorted identifiers (sidecars excluded)
        """
        directory = self.storage_path / slugify(folder)
        if not directory.exists():
            return []
        identifiers = sorted(f.stem for f in directory.iterdir() if f.is_file() and f.suffix != ".json")
        self.logger.info(f"Found {len(identifiers)} artifacts in {folder}")
        return identifiers

    def _url_for(self, file_path: Path) -> str:
        """Public URL when a base URL is configured, otherwise a file:// URI."""
        if self.settings.public_base_url:
            relative = file_path.relative_to(self.storage_path).as_posix()
            return f"{self.settings.public_base_url.rstrip('/')}/{relative}"
        return file_path.resolve().as_uri()
