from rest_framework import serializers

from .models import Tontine, Participant, Payment, PaymentAuditEntry
from .proofs import proof_url
from .services import PaymentService


class ParticipantSerializer(serializers.ModelSerializer):
    """Serializer for Participant model"""

    username = serializers.CharField(source='user.username', read_only=True)
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = Participant
        fields = [
            'id', 'user', 'username', 'display_name', 'position',
            'has_received_payout', 'payout_received_at', 'joined_at'
        ]
        read_only_fields = fields


class TontineSerializer(serializers.ModelSerializer):
    """Serializer for Tontine model"""

    initiator_username = serializers.CharField(source='initiator.username', read_only=True)
    participants = ParticipantSerializer(many=True, read_only=True)
    participant_count = serializers.SerializerMethodField()
    pool_amount = serializers.SerializerMethodField()
    current_beneficiary = serializers.SerializerMethodField()

    class Meta:
        model = Tontine
        fields = [
            'id', 'name', 'description', 'initiator', 'initiator_username',
            'amount', 'frequency', 'custom_days', 'fixed_payment_day',
            'max_participants', 'start_date', 'current_cycle', 'status',
            'order_type', 'gain_type', 'pack_description', 'invite_code',
            'participants', 'participant_count', 'pool_amount',
            'current_beneficiary', 'version', 'started_at', 'completed_at',
            'created_at', 'updated_at'
        ]

    def get_participant_count(self, obj):
        return len(obj.participants.all())

    def get_pool_amount(self, obj):
        return str(obj.get_pool_amount())

    def get_current_beneficiary(self, obj):
        beneficiary = obj.get_current_beneficiary()
        return str(beneficiary.pk) if beneficiary else None


class AuditEntrySerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source='actor.username', read_only=True, default=None)

    class Meta:
        model = PaymentAuditEntry
        fields = ['id', 'action', 'actor', 'actor_username', 'timestamp', 'notes']


class PaymentSerializer(serializers.ModelSerializer):
    """Serializer for Payment model, audit trail included"""

    participant_username = serializers.CharField(source='participant.user.username', read_only=True)
    proof_url = serializers.SerializerMethodField()
    audit_log = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            'id', 'participant', 'participant_username', 'cycle', 'amount',
            'due_date', 'paid_date', 'status', 'proof_reference', 'proof_url',
            'proof_details', 'rejection_reason', 'validated_by', 'validated_at',
            'audit_log'
        ]

    def get_proof_url(self, obj):
        return proof_url(obj.proof_reference)

    def get_audit_log(self, obj):
        return AuditEntrySerializer(PaymentService.audit_trail(obj), many=True).data


class PaymentStateSerializer(serializers.Serializer):
    """Derived contribution state; never stored"""

    participant_id = serializers.UUIDField(source='participant.pk')
    username = serializers.CharField(source='participant.user.username')
    cycle = serializers.IntegerField()
    status = serializers.CharField()
    due_date = serializers.DateField()
    is_overdue = serializers.BooleanField()
    payment_id = serializers.SerializerMethodField()

    def get_payment_id(self, obj):
        return str(obj.payment.pk) if obj.payment else None


class ScheduleEntrySerializer(serializers.Serializer):
    cycle = serializers.IntegerField()
    due_date = serializers.DateField()
    beneficiary_id = serializers.UUIDField(source='beneficiary.pk')
    beneficiary = serializers.CharField(source='beneficiary.display_name')
    is_current = serializers.BooleanField()
