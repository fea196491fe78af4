"""
Erreurs métier / Domain errors.
Levées par les services, converties en réponses JSON par le handler de main.py.
Raised by services, turned into JSON responses by the handler in main.py.
"""


class DomainError(Exception):
    """Erreur métier avec code HTTP / Domain error carrying an HTTP status."""

    status_code: int = 400
    retryable: bool = False

    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(DomainError):
    """Donnée manquante ou invalide, aucune écriture faite / Missing or invalid data, nothing written."""
    status_code = 422


class PermissionDenied(DomainError):
    """Rôle ou propriété insuffisant / Role or ownership mismatch."""
    status_code = 403


class NotFound(DomainError):
    status_code = 404


class TransitionRejected(DomainError):
    """Transition absente de la table des statuts / Transition not in the status table."""
    status_code = 409


class ConcurrentModification(DomainError):
    """Le statut a changé entre lecture et écriture / Status changed between read and write."""
    status_code = 409
    retryable = True


class UploadRejected(DomainError):
    """Fichier refusé avant tout envoi / File refused before any storage call."""
    status_code = 400


class StorageError(DomainError):
    """Échec base ou blob store / Relational or blob store failure."""
    status_code = 503
    retryable = True
