from django.core.management.base import BaseCommand, CommandError

from core.exceptions import LeagueError
from leagues.models import League
from leaderboard.services import LeaderboardService


class Command(BaseCommand):
    help = 'Calculate and print leaderboards for active leagues'

    def add_arguments(self, parser):
        parser.add_argument('--league', type=int, help='Only calculate this league id')
        parser.add_argument('--start-date', help='Window start (YYYY-MM-DD); needs --end-date')
        parser.add_argument('--end-date', help='Window end (YYYY-MM-DD); needs --start-date')
        parser.add_argument('--top', type=int, default=10, help='Individuals to print per league')

    def handle(self, *args, **options):
        leagues = League.objects.filter(is_active=True, status="active")
        if options['league']:
            leagues = League.objects.filter(pk=options['league'])

        if not leagues.exists():
            self.stdout.write(self.style.WARNING('No active leagues found.'))
            return

        total_calculated = 0

        for league in leagues:
            self.stdout.write(f'Calculating leaderboard for: {league.name}')
            try:
                board = LeaderboardService.compute(
                    league.pk, options['start_date'], options['end_date'], full=True
                )
            except LeagueError as exc:
                raise CommandError(f'{league.name}: {exc.message}')

            if not board.teams:
                self.stdout.write(self.style.WARNING(f'  No teams found for {league.name}'))

            for team in board.teams:
                self.stdout.write(
                    f'  #{team.rank} {team.team_name}: {team.total_points:g} pts '
                    f'({team.points} entries + {team.challenge_bonus:g} bonus, avg RR {team.avg_rr:.2f})'
                )
            for sub_team in board.sub_teams:
                self.stdout.write(f'  sub-team #{sub_team.rank} {sub_team.subteam_name}: {sub_team.points:g} pts')
            for individual in board.individuals[:options['top']]:
                self.stdout.write(
                    f'  {individual.rank}. {individual.username}: {individual.points:g} pts (avg RR {individual.avg_rr:.2f})'
                )

            total_calculated += 1
            self.stdout.write(self.style.SUCCESS(
                f'  {board.stats.approved} approved / {board.stats.pending} pending / '
                f'{board.stats.rejected} rejected entries'
            ))

        self.stdout.write(
            self.style.SUCCESS(f'\nSuccessfully calculated {total_calculated} league leaderboards.')
        )
