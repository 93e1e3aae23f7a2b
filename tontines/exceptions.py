"""
Error kinds raised by the tontine services.

Views translate these into HTTP responses (see tontines.views.json_errors);
management commands and tasks let them propagate or log them.
"""


class TontineError(Exception):
    """Base class for every error raised by the tontine core"""

    def __init__(self, message='', **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(TontineError):
    """
    Bad input shape or a missing required field.

    `errors` maps field names to messages so callers can surface a
    structured rejection. Nothing is written when this is raised.
    """

    def __init__(self, message='', errors=None, **context):
        super().__init__(message or 'Invalid data', **context)
        self.errors = errors or {}


class InvalidFrequency(ValidationError):
    """Frequency is unknown, or custom without a usable number of days"""


class InvalidTransition(TontineError):
    """Operation attempted in the wrong lifecycle or payment state"""


class NoPendingPayment(InvalidTransition):
    """No payment awaiting the initiator's decision for this cycle"""


class NotFound(TontineError):
    """Referenced tontine, participant or payment does not exist"""


class ConcurrencyConflict(TontineError):
    """The tontine changed between read and write"""


class ProofStorageError(TontineError):
    """The payment proof could not be stored"""
