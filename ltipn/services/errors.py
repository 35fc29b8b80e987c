"""
Erreurs metier / Domain errors.

Levees par les services quand une regle bloque une operation ; traduites en
reponses HTTP par le gestionnaire enregistre dans main.py.
Raised by services when a rule blocks an operation; translated to HTTP
responses by the handler registered in main.py.
"""


class DomainError(Exception):
    """Base des erreurs metier / Base class for domain errors."""

    code = "domain_error"

    def __init__(self, message: str, field: str | None = None, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.errors = errors or ({field: message} if field else {})

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "field": self.field, "errors": self.errors}


class NotFound(DomainError):
    """Entite introuvable / Entity id unresolved."""
    code = "not_found"


class InvalidState(DomainError):
    """Operation hors du statut requis / Operation outside its required status."""
    code = "invalid_state"


class ValidationError(DomainError):
    """Violation d'une regle de champ / Field-level rule violation."""
    code = "validation_error"

    @classmethod
    def from_errors(cls, errors: dict[str, str]) -> "ValidationError":
        """Regrouper plusieurs erreurs de champ / Group several field errors."""
        field, message = next(iter(errors.items()))
        if len(errors) > 1:
            message = "; ".join(errors.values())
            field = None
        return cls(message, field=field, errors=errors)


class QuotaExceeded(ValidationError):
    """Plafond Nbr_LTC atteint / Nbr_LTC ceiling reached."""
    code = "quota_exceeded"


class Forbidden(DomainError):
    """Role ou propriete insuffisant / Role or ownership mismatch."""
    code = "forbidden"


class AlreadyResponded(DomainError):
    """Temporisation deja traitee par le createur / Temporisation already answered."""
    code = "already_responded"


class Conflict(DomainError):
    """Cle unique en double ou modification concurrente / Duplicate unique key or concurrent change."""
    code = "conflict"
