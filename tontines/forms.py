from django import forms
from django.core.exceptions import ValidationError
from django.utils import timezone
from decimal import Decimal

from .models import Tontine


class TontineForm(forms.ModelForm):
    """Settings of a tontine, used on creation and while it is a draft"""

    class Meta:
        model = Tontine
        fields = [
            'name', 'description', 'amount', 'frequency', 'custom_days',
            'fixed_payment_day', 'max_participants', 'start_date',
            'order_type', 'gain_type', 'pack_description'
        ]
        labels = {
            'name': 'Tontine Name',
            'amount': 'Contribution Amount (FCFA)',
            'frequency': 'Contribution Frequency',
            'custom_days': 'Days per Cycle',
            'fixed_payment_day': 'Payment Day of Month',
            'max_participants': 'Maximum Participants',
            'order_type': 'Payout Order',
            'gain_type': 'Gain Type',
        }
        help_texts = {
            'order_type': 'Manual: join order (can be rearranged before start). Random: drawn once at start.',
            'gain_type': 'Money: the pool is paid out. Pack: the beneficiary receives the described product.',
        }

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise ValidationError("Name is required")
        return name

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is None or amount <= Decimal('0'):
            raise ValidationError("Amount must be greater than zero")
        return amount

    def clean_start_date(self):
        start_date = self.cleaned_data.get('start_date')
        # Only a new or changed start date has to lie ahead
        if start_date and 'start_date' in self.changed_data and start_date < timezone.localdate():
            raise ValidationError("Start date cannot be in the past")
        return start_date

    def clean(self):
        cleaned_data = super().clean()
        frequency = cleaned_data.get('frequency')
        custom_days = cleaned_data.get('custom_days')
        gain_type = cleaned_data.get('gain_type')

        if frequency == 'custom':
            if not custom_days:
                self.add_error('custom_days', "Number of days is required for a custom frequency")
        else:
            cleaned_data['custom_days'] = None

        if frequency != 'monthly':
            cleaned_data['fixed_payment_day'] = None

        if gain_type == 'pack':
            description = (cleaned_data.get('pack_description') or '').strip()
            if not description:
                self.add_error('pack_description', "Pack description is required")
            cleaned_data['pack_description'] = description
        else:
            cleaned_data['pack_description'] = ''

        return cleaned_data


class JoinTontineForm(forms.Form):
    invite_code = forms.CharField(max_length=12)

    def clean_invite_code(self):
        return self.cleaned_data['invite_code'].strip().upper()


class RejectPaymentForm(forms.Form):
    reason = forms.CharField(max_length=500)

    def clean_reason(self):
        reason = self.cleaned_data['reason'].strip()
        if not reason:
            raise ValidationError("A reason is required to reject a payment")
        return reason
