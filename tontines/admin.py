from django.contrib import admin
from django.utils.html import format_html

from .models import Tontine, Participant, Payment, PaymentAuditEntry
from .repository import tontine_repository
from .services import TontineService
from .proofs import proof_url


STATUS_COLORS = {
    'draft': '#9E9E9E',
    'active': '#4CAF50',
    'suspended': '#FF9800',
    'completed': '#2196F3',
    'pending': '#9E9E9E',
    'participant_paid': '#FF9800',
    'confirmed': '#4CAF50',
    'rejected': '#F44336',
}


def _status_badge(value, label):
    return format_html(
        '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
        STATUS_COLORS.get(value, '#9E9E9E'), label
    )


class ParticipantInline(admin.TabularInline):
    """Read-only: membership changes through the participant services"""

    model = Participant
    extra = 0
    can_delete = False
    fields = ['user', 'position', 'has_received_payout', 'payout_received_at', 'joined_at']
    readonly_fields = fields
    ordering = ['position']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Tontine)
class TontineAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'initiator', 'amount_display', 'frequency', 'status_badge',
        'current_cycle', 'participants_display', 'invite_code', 'created_at'
    ]
    list_filter = ['status', 'frequency', 'order_type', 'gain_type', 'created_at']
    search_fields = ['name', 'invite_code', 'initiator__username']
    readonly_fields = ['id', 'invite_code', 'version', 'started_at', 'completed_at', 'created_at', 'updated_at']
    inlines = [ParticipantInline]

    fieldsets = (
        ('Tontine', {
            'fields': ('id', 'name', 'description', 'initiator', 'invite_code')
        }),
        ('Contributions', {
            'fields': ('amount', 'frequency', 'custom_days', 'fixed_payment_day', 'start_date')
        }),
        ('Rotation', {
            'fields': ('max_participants', 'order_type', 'gain_type', 'pack_description', 'current_cycle', 'status')
        }),
        ('Timestamps', {
            'fields': ('version', 'started_at', 'completed_at', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        # status and cycle move through the lifecycle services only
        fields = list(self.readonly_fields) + ['status', 'current_cycle']
        if obj is not None and obj.status != 'draft':
            fields += ['order_type', 'max_participants', 'start_date', 'frequency', 'custom_days', 'fixed_payment_day']
        return fields

    def save_model(self, request, obj, form, change):
        if change:
            stored = Tontine.objects.only('status', 'current_cycle').get(pk=obj.pk)
            obj.status = stored.status
            obj.current_cycle = stored.current_cycle
            tontine_repository.save(obj)
        else:
            obj.invite_code = obj.invite_code or TontineService.generate_invite_code()
            tontine_repository.add(obj)

    def amount_display(self, obj):
        return f"{obj.amount:,.0f} FCFA"
    amount_display.short_description = 'Amount'

    def status_badge(self, obj):
        return _status_badge(obj.status, obj.get_status_display())
    status_badge.short_description = 'Status'

    def participants_display(self, obj):
        limit = '∞' if obj.is_unlimited else obj.max_participants
        return f"{obj.participant_count()}/{limit}"
    participants_display.short_description = 'Participants'


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    """Read-only: positions and payouts belong to the rotation"""

    list_display = ['user', 'tontine', 'position', 'has_received_payout', 'joined_at']
    list_filter = ['has_received_payout', 'tontine__status']
    search_fields = ['user__username', 'tontine__name']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class PaymentAuditInline(admin.TabularInline):
    model = PaymentAuditEntry
    extra = 0
    can_delete = False
    fields = ['action', 'actor', 'timestamp', 'notes']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Read-only: payments change through the ledger only"""

    list_display = ['participant', 'tontine', 'cycle', 'amount', 'due_date', 'status_badge', 'paid_date', 'proof_link']
    list_filter = ['status', 'due_date']
    search_fields = ['participant__user__username', 'tontine__name', 'proof_reference']
    date_hierarchy = 'due_date'
    inlines = [PaymentAuditInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def status_badge(self, obj):
        return _status_badge(obj.status, obj.get_status_display())
    status_badge.short_description = 'Status'

    def proof_link(self, obj):
        url = proof_url(obj.proof_reference)
        if not url:
            return '-'
        return format_html('<a href="{}" target="_blank">View proof</a>', url)
    proof_link.short_description = 'Proof'


@admin.register(PaymentAuditEntry)
class PaymentAuditEntryAdmin(admin.ModelAdmin):
    list_display = ['payment', 'action', 'actor', 'timestamp']
    list_filter = ['action', 'timestamp']
    search_fields = ['payment__participant__user__username', 'notes']
    readonly_fields = ['payment', 'action', 'actor', 'timestamp', 'notes']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
