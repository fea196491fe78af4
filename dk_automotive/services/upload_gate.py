"""
Contrôle des fichiers avant stockage / Pre-storage file gate.
Taille max et liste blanche MIME, appliqués côté serveur avant tout appel au blob store.
Size ceiling and MIME allow-list, enforced server-side before any blob store call.
"""

import mimetypes
import re
from pathlib import Path

from dk_automotive.config import settings
from dk_automotive.exceptions import UploadRejected

PDF_ONLY = ("application/pdf",)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def resolve_mime_type(filename: str | None, content_type: str | None) -> str:
    """Type MIME déclaré, ou déduit de l'extension / Declared MIME type, or guessed from the extension."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime and mime != "application/octet-stream":
        return mime
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "application/octet-stream"


def validate_upload(
    filename: str | None,
    content_type: str | None,
    size: int,
    allowed: tuple[str, ...] | list[str] | None = None,
    max_size: int | None = None,
) -> str:
    """
    Valider un fichier avant envoi / Validate a file before upload.
    Retourne le type MIME retenu / Returns the accepted MIME type.
    """
    max_size = settings.MAX_UPLOAD_SIZE_BYTES if max_size is None else max_size
    allowed = settings.ALLOWED_UPLOAD_MIME_TYPES if allowed is None else allowed

    if size <= 0:
        raise UploadRejected("Fichier vide / Empty file")
    if size > max_size:
        raise UploadRejected(
            f"Fichier trop volumineux (max {max_size // (1024 * 1024)} Mo) / File too large",
            status_code=413,
        )

    mime = resolve_mime_type(filename, content_type)
    if mime not in allowed:
        raise UploadRejected(f"Type de fichier non autorisé: {mime} / File type not allowed", status_code=415)
    return mime


def safe_filename(filename: str | None, default: str = "file") -> str:
    """Nom de fichier sans séparateurs ni caractères spéciaux / Filename stripped of separators."""
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or default
