from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Tontine',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('amount', models.DecimalField(decimal_places=2, help_text='Contribution expected from each participant per cycle', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('frequency', models.CharField(choices=[('daily', 'Daily'), ('weekly', 'Weekly'), ('monthly', 'Monthly'), ('custom', 'Custom (every N days)')], default='monthly', max_length=10)),
                ('custom_days', models.PositiveIntegerField(blank=True, help_text='Cycle length in days when frequency is custom', null=True)),
                ('fixed_payment_day', models.PositiveSmallIntegerField(blank=True, help_text='Day of the month payments fall due (monthly tontines only)', null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(31)])),
                ('max_participants', models.PositiveIntegerField(blank=True, help_text='Leave empty for an unlimited number of participants', null=True, validators=[django.core.validators.MinValueValidator(2)])),
                ('start_date', models.DateField()),
                ('current_cycle', models.PositiveIntegerField(default=0)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('suspended', 'Suspended'), ('completed', 'Completed')], default='draft', max_length=15)),
                ('order_type', models.CharField(choices=[('manual', 'Manual'), ('random', 'Random')], default='manual', max_length=10)),
                ('gain_type', models.CharField(choices=[('money', 'Money'), ('pack', 'Pack / Product')], default='money', max_length=10)),
                ('pack_description', models.TextField(blank=True)),
                ('invite_code', models.CharField(max_length=12, unique=True)),
                ('version', models.PositiveIntegerField(default=0)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('initiator', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='initiated_tontines', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Tontine',
                'verbose_name_plural': 'Tontines',
                'db_table': 'tontine',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Participant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveIntegerField(help_text='1-based rank in the payout rotation')),
                ('has_received_payout', models.BooleanField(default=False)),
                ('payout_received_at', models.DateTimeField(blank=True, null=True)),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('tontine', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='tontines.tontine')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tontine_participations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Participant',
                'verbose_name_plural': 'Participants',
                'db_table': 'tontine_participant',
                'ordering': ['position', 'joined_at'],
                'unique_together': {('tontine', 'user')},
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('cycle', models.PositiveIntegerField(help_text='Rotation cycle this payment is for')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('due_date', models.DateField()),
                ('paid_date', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('participant_paid', 'Paid (awaiting validation)'), ('confirmed', 'Confirmed'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('proof_reference', models.CharField(blank=True, max_length=500)),
                ('proof_details', models.JSONField(blank=True, default=dict)),
                ('rejection_reason', models.TextField(blank=True)),
                ('validated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('participant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='tontines.participant')),
                ('tontine', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='tontines.tontine')),
                ('validated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='validated_tontine_payments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Payment',
                'verbose_name_plural': 'Payments',
                'db_table': 'tontine_payment',
                'ordering': ['cycle', 'created_at'],
                'unique_together': {('participant', 'cycle')},
            },
        ),
        migrations.CreateModel(
            name='PaymentAuditEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('participant_marked_paid', 'Participant marked paid'), ('initiator_validated', 'Initiator validated'), ('initiator_rejected', 'Initiator rejected')], max_length=30)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True)),
                ('actor', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tontine_payment_actions', to=settings.AUTH_USER_MODEL)),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_log', to='tontines.payment')),
            ],
            options={
                'verbose_name': 'Payment Audit Entry',
                'verbose_name_plural': 'Payment Audit Entries',
                'db_table': 'tontine_payment_audit',
                'ordering': ['timestamp', 'id'],
            },
        ),
    ]
