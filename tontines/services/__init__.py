from .lifecycle_service import TontineService
from .participant_service import ParticipantService
from .payment_service import PaymentService, PaymentState

__all__ = ['TontineService', 'ParticipantService', 'PaymentService', 'PaymentState']
