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
            name='SpecialChallenge',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=120, unique=True)),
                ('description', models.TextField(blank=True)),
                ('challenge_type', models.CharField(blank=True, default='', max_length=20)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, help_text='Bonus counts in windows containing this date', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='LeagueChallenge',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=120)),
                ('description', models.TextField(blank=True)),
                ('challenge_type', models.CharField(choices=[('individual', 'Individual'), ('team', 'Team'), ('sub_team', 'Sub-team')], default='individual', max_length=20)),
                ('total_points', models.FloatField(default=0, help_text='Points awarded per approved submission unless overridden')),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('closed', 'Closed')], default='active', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='challenges', to='leagues.league')),
                ('special_challenge', models.ForeignKey(blank=True, help_text='Catalog challenge this was created from (optional)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='league_challenges', to='challenges.specialchallenge')),
            ],
            options={
                'ordering': ['start_date', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='SubTeam',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=120)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('league_challenge', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sub_teams', to='challenges.leaguechallenge')),
                ('members', models.ManyToManyField(blank=True, related_name='sub_teams', to='leagues.leaguemember')),
                ('team', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sub_teams', to='leagues.team')),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ChallengeSubmission',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('proof_url', models.URLField(max_length=500)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=10)),
                ('awarded_points', models.FloatField(blank=True, help_text='Overrides the challenge total when set; 0 means no points', null=True)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('league_challenge', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='submissions', to='challenges.leaguechallenge')),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='challenge_submissions', to='leagues.leaguemember')),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('sub_team', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='submissions', to='challenges.subteam')),
                ('team', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='challenge_submissions', to='leagues.team')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='SpecialChallengeTeamScore',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('score', models.FloatField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('challenge', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='team_scores', to='challenges.specialchallenge')),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='special_challenge_team_scores', to='leagues.league')),
                ('team', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='special_challenge_scores', to='leagues.team')),
            ],
        ),
        migrations.CreateModel(
            name='SpecialChallengeIndividualScore',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('score', models.FloatField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('challenge', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='individual_scores', to='challenges.specialchallenge')),
                ('league', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='special_challenge_individual_scores', to='leagues.league')),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='special_challenge_scores', to='leagues.leaguemember')),
            ],
        ),
        migrations.AddConstraint(
            model_name='challengesubmission',
            constraint=models.UniqueConstraint(fields=('league_challenge', 'member'), name='unique_challenge_submission_member'),
        ),
        migrations.AddConstraint(
            model_name='specialchallengeteamscore',
            constraint=models.UniqueConstraint(fields=('challenge', 'team'), name='unique_special_challenge_team'),
        ),
        migrations.AddConstraint(
            model_name='specialchallengeindividualscore',
            constraint=models.UniqueConstraint(fields=('challenge', 'member'), name='unique_special_challenge_member'),
        ),
    ]
