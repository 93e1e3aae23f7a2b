from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('tontines', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('notification_type', models.CharField(choices=[('tontine_started', 'Tontine Started'), ('tontine_suspended', 'Tontine Suspended'), ('tontine_resumed', 'Tontine Resumed'), ('tontine_completed', 'Tontine Completed'), ('cycle_advanced', 'Cycle Advanced'), ('payout_ready', 'Payout Ready'), ('payment_due', 'Payment Due'), ('payment_overdue', 'Payment Overdue'), ('payment_submitted', 'Payment Submitted'), ('payment_validated', 'Payment Validated'), ('payment_rejected', 'Payment Rejected'), ('participant_joined', 'Participant Joined'), ('participant_removed', 'Participant Removed'), ('general', 'General')], default='general', max_length=30)),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('action_url', models.CharField(blank=True, max_length=500)),
                ('is_read', models.BooleanField(default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('is_sent', models.BooleanField(default=False)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('tontine', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='notifications', to='tontines.tontine')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tontine_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'db_table': 'tontine_notification',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'is_read'], name='tontine_notif_user_read_idx')],
            },
        ),
    ]
