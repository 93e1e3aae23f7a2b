"""
Payment proof intake.

Files are handed to Django's default storage and only the returned name is
kept on the payment; the bytes are never inspected here.
"""

from dataclasses import dataclass, field
from decimal import Decimal
import logging
import mimetypes
import os
import uuid

from django.core.files.storage import default_storage
from rest_framework import serializers

from constance import config

from .exceptions import ProofStorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'application/pdf'}

NETWORK_CHOICES = [
    ('MTN', 'MTN Mobile Money'),
    ('ORANGE', 'Orange Money'),
    ('MOOV', 'Moov Money'),
    ('WAVE', 'Wave'),
    ('BANK', 'Bank transfer'),
    ('CASH', 'Cash hand-over'),
]


class TransferDetailsSerializer(serializers.Serializer):
    """What the participant claims about the off-band transfer"""

    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    network = serializers.ChoiceField(choices=NETWORK_CHOICES, default='MTN')
    recipient_number = serializers.CharField(max_length=30)
    transfer_number = serializers.CharField(max_length=60)
    transfer_date = serializers.DateField()
    transfer_time = serializers.TimeField()
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


@dataclass
class ProofSubmission:
    """Stored proof reference plus the claimed transfer details"""

    reference: str
    details: dict = field(default_factory=dict)

    def as_json(self):
        return dict(self.details, reference=self.reference)


def clean_transfer_details(data):
    serializer = TransferDetailsSerializer(data=data)
    if not serializer.is_valid():
        raise ValidationError("Invalid transfer details", errors=serializer.errors)
    return dict(serializer.data)


def validate_proof_file(uploaded_file):
    """Reject unsupported formats and oversized files"""
    if uploaded_file is None:
        raise ValidationError("A payment proof file is required", errors={'file': 'required'})

    content_type = getattr(uploaded_file, 'content_type', None) or mimetypes.guess_type(uploaded_file.name)[0]
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            "Unsupported format. Use JPG, PNG or PDF.",
            errors={'file': 'unsupported_type'}
        )

    max_bytes = int(config.TONTINE_PROOF_MAX_BYTES)
    if uploaded_file.size > max_bytes:
        raise ValidationError(
            f"File too large. Maximum {max_bytes // (1024 * 1024)}MB.",
            errors={'file': 'too_large'}
        )
    return content_type


def store_proof(uploaded_file, tontine, participant, cycle):
    """Save the file and return its opaque storage reference"""
    extension = os.path.splitext(uploaded_file.name)[1].lower()
    path = f"payment_proofs/{tontine.pk}/{participant.pk}/cycle-{cycle}-{uuid.uuid4().hex}{extension}"
    try:
        reference = default_storage.save(path, uploaded_file)
    except Exception as e:
        logger.exception(f"❌ Could not store payment proof for participant {participant.pk}")
        raise ProofStorageError("Could not store the payment proof, please try again") from e

    logger.info(f"Stored payment proof {reference} ({uploaded_file.size} bytes)")
    return reference


def build_submission(uploaded_file, transfer_data, tontine, participant, cycle):
    """
    Validate the upload and the claimed details, then store the file.

    Validation happens first so a bad form never leaves a file behind.
    """
    details = clean_transfer_details(transfer_data)
    content_type = validate_proof_file(uploaded_file)
    reference = store_proof(uploaded_file, tontine, participant, cycle)

    details.update({
        'file_name': uploaded_file.name,
        'content_type': content_type,
        'size': uploaded_file.size,
    })
    return ProofSubmission(reference=reference, details=details)


def proof_url(reference):
    """Public URL for a stored proof, empty when the storage has none"""
    if not reference:
        return ''
    try:
        return default_storage.url(reference)
    except NotImplementedError:
        return ''
