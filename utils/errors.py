# utils/errors.py


class LedgerError(Exception):
    """
    Base class for mining ledger failures.

    code      stable machine-readable identifier sent to clients
    status    HTTP status the blueprints answer with
    retryable whether the same request may succeed if sent again
    """

    code = 'ledger_error'
    status = 500
    retryable = False

    def __init__(self, message=None, **context):
        self.message = message or (self.__class__.__doc__ or '').strip().splitlines()[0]
        self.context = context
        super().__init__(self.message)

    def __str__(self):
        base = f"[{self.code}] {self.message}"
        if self.context:
            base += f" ctx={self.context}"
        return base

    def to_dict(self):
        return {
            'success': False,
            'error': self.code,
            'message': self.message,
            'retryable': self.retryable,
        }


class Unauthenticated(LedgerError):
    """Caller is not authenticated as the record owner"""
    code = 'unauthenticated'
    status = 401


class RecordNotFound(LedgerError):
    """No mining record exists for this user"""
    code = 'record_not_found'
    status = 404


class UserAlreadyExists(LedgerError):
    """User has already been onboarded"""
    code = 'user_exists'
    status = 409


class StorageConflict(LedgerError):
    """Concurrent update kept colliding with this claim"""
    code = 'storage_conflict'
    status = 503
    retryable = True


class StorageUnavailable(LedgerError):
    """Storage is temporarily unavailable"""
    code = 'storage_unavailable'
    status = 503
    retryable = True
