class InvalidStep(ValueError):
    """Recurring interval input that cannot produce a safe series."""


class CollaboratorError(RuntimeError):
    """Persistence or dispatch failed; the caller decides whether to retry."""

    def __init__(self, message, collaborator=None):
        super().__init__(message)
        self.collaborator = collaborator
