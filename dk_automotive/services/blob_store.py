"""
Stockage des fichiers / Blob store.
Fichiers adressés par chemin relatif sous STORAGE_DIR (driver_invoices/..., driver_documents/..., missions/...).
Files addressed by relative path under STORAGE_DIR.
"""

import logging
from pathlib import Path

from dk_automotive.config import settings
from dk_automotive.exceptions import StorageError, ValidationFailed

logger = logging.getLogger(__name__)


class BlobStore:
    """Stockage disque confiné à un répertoire racine / Disk storage confined to a root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target == self.root or self.root not in target.parents:
            raise ValidationFailed(f"Chemin invalide / Invalid path: {path}")
        return target

    def upload(self, path: str, content: bytes, upsert: bool = False) -> str:
        """Écrire un fichier / Write a file. Refuse d'écraser sauf upsert."""
        target = self._resolve(path)
        if target.exists() and not upsert:
            raise StorageError(f"Le fichier existe déjà / File already exists: {path}", status_code=409)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            logger.error("Blob upload failed for %s: %s", path, exc)
            raise StorageError("Échec de l'envoi du fichier / File upload failed") from exc
        logger.info("Stored blob %s (%d bytes)", path, len(content))
        return path

    def remove(self, paths: list[str]) -> None:
        """Supprimer des fichiers / Remove files. Un fichier absent n'est pas une erreur."""
        for path in paths:
            target = self._resolve(path)
            try:
                target.unlink(missing_ok=True)
            except OSError as exc:
                logger.error("Blob removal failed for %s: %s", path, exc)
                raise StorageError(f"Échec de suppression / Removal failed: {path}") from exc
        logger.info("Removed %d blob(s)", len(paths))

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(path)
        try:
            return target.read_bytes()
        except OSError as exc:
            logger.error("Blob read failed for %s: %s", path, exc)
            raise StorageError("Lecture du fichier impossible / File read failed") from exc

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def local_path(self, path: str) -> Path:
        return self._resolve(path)

    def public_url(self, path: str) -> str:
        """URL de téléchargement (route /api/files) / Download URL served by /api/files."""
        return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/files/{path}"


def get_blob_store() -> BlobStore:
    """Dépendance FastAPI / FastAPI dependency."""
    return BlobStore(settings.STORAGE_DIR)
