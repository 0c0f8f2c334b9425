"""Domain-specific exceptions"""

from typing import Iterable


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidRequestError(DomainException):
    """Caller input rejected before any request was sent"""

    pass


class TransportFailure(DomainException):
    """PlugBoleto API is unreachable or answered outside the expected envelope"""

    pass


class ServiceError(DomainException):
    """
    PlugBoleto answered with an error envelope.

    The string form is the service message followed by one line per itemized
    reason, so operators see both the summary and the per-item cause.
    """

    def __init__(self, message: str, reasons: Iterable[str] = ()):
        self.message = message or ""
        self.reasons = [str(reason) for reason in reasons]
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.reasons:
            return self.message
        return self.message + "\n" + "\n".join(self.reasons)


class SubmissionRejected(ServiceError):
    """Batch, return file or print job refused at submission"""

    pass


class ReturnFileFailed(ServiceError):
    """Return file protocol ended in a status other than processed/processing"""

    pass


class PrintNotReady(ServiceError):
    """Print artifact was not produced within the polling budget"""

    pass
