import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('leagues', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Entry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(help_text='Calendar day the entry is for')),
                ('kind', models.CharField(choices=[('workout', 'Workout'), ('rest', 'Rest day')], max_length=10)),
                ('workout_type', models.CharField(blank=True, default='', help_text='Subtype such as run, cycling, steps, golf, gym, yoga', max_length=40)),
                ('duration', models.FloatField(blank=True, help_text='Minutes', null=True)),
                ('distance', models.FloatField(blank=True, help_text='Kilometres', null=True)),
                ('steps', models.PositiveIntegerField(blank=True, null=True)),
                ('holes', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('rr_value', models.FloatField(default=0.0, help_text='Normalised score between 0.0 and 2.0')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=10)),
                ('proof_url', models.URLField(blank=True, default='', max_length=500)),
                ('notes', models.TextField(blank=True, default='')),
                ('submission_reason', models.CharField(choices=[('none', 'None'), ('exemption_request', 'Rest day exemption request')], default='none', max_length=20)),
                ('rejection_reason', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='entries', to='leagues.leaguemember')),
                ('modified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('reupload_of', models.ForeignKey(blank=True, help_text='Rejected entry this submission replaces', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reuploads', to='entries.entry')),
            ],
            options={
                'verbose_name_plural': 'entries',
                'ordering': ['-date', '-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='entry',
            index=models.Index(fields=['member', 'date'], name='entries_ent_member__3f1c2a_idx'),
        ),
        migrations.AddIndex(
            model_name='entry',
            index=models.Index(fields=['status'], name='entries_ent_status_8b7d4e_idx'),
        ),
        migrations.AddConstraint(
            model_name='entry',
            constraint=models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'approved'])), fields=('member', 'date'), name='unique_active_entry_per_member_day'),
        ),
    ]
