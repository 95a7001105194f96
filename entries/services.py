"""Workout and rest-day submission lifecycle.

Entries move ``pending -> approved | rejected``. A rejected entry can be
replaced in place (same day, no reupload link) or re-uploaded as a new row
linked through ``reupload_of``. Only hosts and governors may re-grade an
entry that is no longer pending.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from core.exceptions import Conflict, Forbidden, InfrastructureError, NotFound, ValidationFailed
from core.services.date_utils import DateRangeService
from core.services.rr_calculator import WorkoutMetrics, compute_rr_value, is_eligible_workout
from leagues.models import League, LeagueMember
from leagues.services import LeagueService, RoleResolver

from .models import Entry

logger = logging.getLogger(__name__)

WRITE_ATTEMPTS = 2
AUTO_REST_DAY_NOTE = "Auto-assigned rest day (no submission logged)"


@dataclass(frozen=True)
class RestDayStats:
    total_allowed: int
    used: int
    pending: int
    remaining: int
    is_at_limit: bool
    exemptions_pending: int
    rest_days_per_week: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            'totalAllowed': self.total_allowed,
            'used': self.used,
            'pending': self.pending,
            'remaining': self.remaining,
            'isAtLimit': self.is_at_limit,
            'exemptionsPending': self.exemptions_pending,
            'restDaysPerWeek': self.rest_days_per_week,
        }


class RestDayService:
    """Per-member rest-day budget: ``rest_days per week x league weeks``."""

    @staticmethod
    def stats(member: LeagueMember) -> RestDayStats:
        """Get rest-day usage for a league member.

        ``used`` counts approved regular rest days, ``pending`` counts regular
        rest days awaiting review. Exemption requests sit outside the budget
        and are reported separately.

        Example:
            >>> stats = RestDayService.stats(member)
            >>> stats.remaining
            3
        """
        league = member.league
        total_allowed = league.total_rest_days
        try:
            rest_entries = Entry.objects.filter(member=member, kind=Entry.REST)
            used = rest_entries.filter(status=Entry.APPROVED, submission_reason=Entry.REASON_NONE).count()
            pending = rest_entries.filter(status=Entry.PENDING, submission_reason=Entry.REASON_NONE).count()
            exemptions_pending = rest_entries.filter(
                status=Entry.PENDING, submission_reason=Entry.REASON_EXEMPTION
            ).count()
        except DatabaseError as exc:
            logger.exception(f"Rest day lookup failed for member {member.pk}")
            raise InfrastructureError(str(exc)) from exc

        remaining = max(0, total_allowed - used - pending)
        return RestDayStats(
            total_allowed=total_allowed,
            used=used,
            pending=pending,
            remaining=remaining,
            is_at_limit=remaining <= 0,
            exemptions_pending=exemptions_pending,
            rest_days_per_week=league.rest_days,
        )

    @staticmethod
    def stats_for_user(user, league_id) -> RestDayStats:
        LeagueService.get_league(league_id)
        member = LeagueService.get_active_membership(user, league_id)
        if member is None:
            raise Forbidden("You are not a member of this league")
        return RestDayService.stats(member)


def _member_age(member: LeagueMember, today: date) -> Optional[int]:
    profile = getattr(member.user, 'profile', None)
    if profile is None:
        return None
    return profile.age_on(today)


class SubmissionService:
    """Write and review operations for entries."""

    @staticmethod
    def submit_entry(user, league_id, data: Dict[str, Any]) -> Tuple[Entry, bool]:
        """Create or replace the caller's entry for a day.

        Args:
            user: submitting Django User
            league_id: league the entry counts towards
            data: validated payload with ``date``, ``kind`` and optional
                ``workout_type``, ``duration``, ``distance``, ``steps``,
                ``holes``, ``proof_url``, ``notes``, ``reupload_of``

        Returns:
            Tuple of (entry, created). ``created`` is False when a rejected
            entry for the same day was replaced in place.

        Raises:
            NotFound, Forbidden, Conflict, ValidationFailed, InfrastructureError
        """
        LeagueService.get_league(league_id)
        member = LeagueService.get_active_membership(user, league_id)
        if member is None:
            raise Forbidden("You are not a member of this league")

        for attempt in range(1, WRITE_ATTEMPTS + 1):
            try:
                with transaction.atomic():
                    return SubmissionService._write_entry(user, member, data)
            except IntegrityError:
                # Another write for the same member and day won the race
                logger.warning(
                    f"Concurrent entry write for member {member.pk} on {data.get('date')} "
                    f"(attempt {attempt}/{WRITE_ATTEMPTS})"
                )
            except DatabaseError as exc:
                logger.exception(f"Entry write failed for member {member.pk}")
                raise InfrastructureError(str(exc)) from exc

        raise Conflict(
            f"You already submitted an entry for {data.get('date')}. "
            "You can only resubmit if it was rejected."
        )

    @staticmethod
    def _write_entry(user, member: LeagueMember, data: Dict[str, Any]) -> Tuple[Entry, bool]:
        # Serialises concurrent writers for the same member on backends with row locks
        member = LeagueMember.objects.select_for_update().select_related('league', 'user').get(pk=member.pk)

        entry_date = DateRangeService.parse_date(data.get('date'))
        kind = data.get('kind')
        if kind not in (Entry.WORKOUT, Entry.REST):
            raise ValidationFailed("type must be 'workout' or 'rest'")

        reupload_of = SubmissionService._resolve_reupload(member, data.get('reupload_of'), entry_date)

        existing_rows = list(
            Entry.objects.filter(member=member, date=entry_date).order_by('-created_at', '-pk')
        )
        has_active = any(row.status != Entry.REJECTED for row in existing_rows)
        if has_active and reupload_of is None:
            raise Conflict(
                f"You already submitted an entry for {entry_date.isoformat()}. "
                "You can only resubmit if it was rejected."
            )
        replaced = existing_rows[0] if existing_rows and reupload_of is None else None

        proof_url = data.get('proof_url') or ''
        if kind == Entry.WORKOUT and not proof_url:
            if replaced is not None and replaced.proof_url:
                proof_url = replaced.proof_url
            else:
                raise ValidationFailed("proof_url is required for workout entries")

        notes = (data.get('notes') or '').strip()
        submission_reason = Entry.REASON_NONE
        if kind == Entry.REST:
            stats = RestDayService.stats(member)
            if stats.is_at_limit:
                if not notes:
                    raise ValidationFailed(
                        "Rest day limit reached. A justification is required to request an exemption."
                    )
                submission_reason = Entry.REASON_EXEMPTION

        metrics = WorkoutMetrics(
            duration=data.get('duration'),
            distance=data.get('distance'),
            steps=data.get('steps'),
            holes=data.get('holes'),
        )
        workout_type = (data.get('workout_type') or '') if kind == Entry.WORKOUT else ''
        age = _member_age(member, timezone.localdate())
        rr_value = compute_rr_value(kind, workout_type or None, metrics, age)
        if kind == Entry.WORKOUT and not is_eligible_workout(rr_value):
            raise ValidationFailed(
                "Workout RR must be at least 1.0 to submit. Please increase duration/distance/steps."
            )

        fields = {
            'kind': kind,
            'workout_type': workout_type,
            'duration': metrics.duration,
            'distance': metrics.distance,
            'steps': metrics.steps,
            'holes': metrics.holes,
            'rr_value': rr_value,
            'status': Entry.PENDING,
            'proof_url': proof_url,
            'notes': notes,
            'submission_reason': submission_reason,
            'rejection_reason': '',
            'reupload_of': reupload_of,
        }

        if replaced is not None:
            for name, value in fields.items():
                setattr(replaced, name, value)
            replaced.modified_by = user
            with transaction.atomic():
                replaced.save()
            logger.info(
                f"Replaced rejected entry {replaced.pk} for member {member.pk} on {entry_date} "
                f"(rr={rr_value:.2f})"
            )
            return replaced, False

        with transaction.atomic():
            entry = Entry.objects.create(
                member=member,
                date=entry_date,
                created_by=user,
                modified_by=user,
                **fields,
            )
        logger.info(
            f"Created {kind} entry {entry.pk} for member {member.pk} on {entry_date} "
            f"(rr={rr_value:.2f}, reupload_of={reupload_of.pk if reupload_of else None})"
        )
        return entry, True

    @staticmethod
    def _resolve_reupload(member: LeagueMember, reupload_id, entry_date: date) -> Optional[Entry]:
        if not reupload_id:
            return None
        original = Entry.objects.filter(pk=reupload_id).first()
        if original is None:
            raise NotFound("Submission not found")
        if original.member_id != member.pk:
            raise Forbidden("You can only reupload your own submissions")
        if original.status != Entry.REJECTED:
            raise ValidationFailed("Only rejected submissions can be reuploaded")
        if original.date != entry_date:
            raise ValidationFailed("A reupload must be for the same date as the rejected submission")
        return original

    @staticmethod
    def reupload_entry(user, entry_id, changes: Dict[str, Any]) -> Entry:
        """Resubmit a rejected entry as a new pending row linked to it.

        Metrics, proof and notes not present in ``changes`` are copied from
        the rejected entry; the score is recomputed.
        """
        try:
            original = Entry.objects.select_related('member').get(pk=entry_id)
        except (Entry.DoesNotExist, ValueError, TypeError):
            raise NotFound("Submission not found")
        except DatabaseError as exc:
            logger.exception(f"Entry lookup failed for {entry_id}")
            raise InfrastructureError(str(exc)) from exc

        if original.member.user_id != user.pk:
            raise Forbidden("You can only reupload your own submissions")
        if original.status != Entry.REJECTED:
            raise ValidationFailed("Only rejected submissions can be reuploaded")

        payload = {
            'date': original.date,
            'kind': original.kind,
            'workout_type': original.workout_type,
            'reupload_of': original.pk,
        }
        for name in ('duration', 'distance', 'steps', 'holes', 'proof_url', 'notes'):
            value = changes.get(name)
            payload[name] = value if value is not None else getattr(original, name)

        entry, _ = SubmissionService.submit_entry(user, original.member.league_id, payload)
        return entry

    @staticmethod
    def validate_entry(reviewer, entry_id, status: str, rejection_reason: Optional[str] = None) -> Entry:
        """Approve or reject an entry.

        Hosts and governors may grade and re-grade any entry in their league.
        Captains may grade pending entries of members of their own team,
        never their own entry.

        Raises:
            NotFound, Forbidden, ValidationFailed, Conflict, InfrastructureError
        """
        if status not in (Entry.APPROVED, Entry.REJECTED):
            raise ValidationFailed("status must be approved or rejected")

        try:
            with transaction.atomic():
                entry = (
                    Entry.objects.select_for_update()
                    .select_related('member')
                    .filter(pk=entry_id)
                    .first()
                )
                if entry is None:
                    raise NotFound("Submission not found")

                roles = RoleResolver.for_user(reviewer, entry.member.league_id)
                can_override = roles.can_override
                is_captain = roles.is_captain_of(entry.member.team_id)

                if not can_override and not is_captain:
                    raise Forbidden("You do not have permission to validate this submission")
                if not can_override:
                    if entry.status != Entry.PENDING:
                        raise Forbidden(
                            "This submission has already been graded. Captains can only grade "
                            "pending submissions; hosts/governors can override."
                        )
                    if entry.member.user_id == reviewer.pk:
                        raise Forbidden("You cannot validate your own submission")

                previous_status = entry.status
                entry.status = status
                entry.modified_by = reviewer
                entry.modified_at = timezone.now()
                if status == Entry.REJECTED:
                    entry.rejection_reason = (rejection_reason or '').strip()
                else:
                    entry.rejection_reason = ''

                try:
                    with transaction.atomic():
                        entry.save(update_fields=['status', 'modified_by', 'modified_at', 'rejection_reason'])
                except IntegrityError:
                    raise Conflict("Another active entry already exists for this member and date")
        except DatabaseError as exc:
            logger.exception(f"Validation of entry {entry_id} failed")
            raise InfrastructureError(str(exc)) from exc

        logger.info(
            f"Entry {entry.pk} {previous_status} -> {status} by user {reviewer.pk}"
            f"{' (override)' if can_override and previous_status != Entry.PENDING else ''}"
        )
        return entry

    @staticmethod
    def auto_assign_rest_days(day: date) -> Dict[str, int]:
        """Log an approved rest day for members with no entry on ``day``.

        Only leagues with ``auto_rest_day_enabled`` running on ``day`` are
        processed, and only members with rest-day budget left receive one.

        Returns:
            Dictionary with ``assigned`` and ``processed`` counts
        """
        assigned = 0
        processed = 0
        leagues = League.objects.filter(
            auto_rest_day_enabled=True,
            is_active=True,
            status="active",
            start_date__lte=day,
            end_date__gte=day,
        )
        for league in leagues:
            members = league.members.filter(is_active=True).select_related('league')
            for member in members:
                processed += 1
                if Entry.objects.filter(member=member, date=day).exists():
                    continue
                if RestDayService.stats(member).remaining <= 0:
                    continue
                try:
                    with transaction.atomic():
                        Entry.objects.create(
                            member=member,
                            date=day,
                            kind=Entry.REST,
                            rr_value=compute_rr_value(Entry.REST),
                            status=Entry.APPROVED,
                            notes=AUTO_REST_DAY_NOTE,
                        )
                except IntegrityError:
                    logger.warning(f"Member {member.pk} submitted for {day} while auto rest day was assigned")
                    continue
                assigned += 1
                logger.info(f"Auto-assigned rest day for {day} to member {member.pk} in league {league.pk}")

        logger.info(f"Auto rest day run for {day}: {assigned} assigned out of {processed} members processed")
        return {'assigned': assigned, 'processed': processed}


@dataclass
class EntryListing:
    """Entries returned by a review queue plus per-status counts."""
    entries: List[Entry]
    member: Optional[LeagueMember] = None

    @property
    def stats(self) -> Dict[str, int]:
        counts = {'total': len(self.entries), Entry.PENDING: 0, Entry.APPROVED: 0, Entry.REJECTED: 0}
        for entry in self.entries:
            counts[entry.status] += 1
        return counts


class ReviewQueueService:
    """Read-only entry listings for reviewers and for the submitting member.

    Graders need these to find the entry ids they can validate; members use
    their own listing to find rejected entries to re-upload.
    """

    @staticmethod
    def league_entries(user, league_id, status: Optional[str] = None, team_id=None) -> EntryListing:
        """Every entry in the league, newest day first. Hosts and governors only.

        Args:
            user: requesting Django User
            league_id: League id
            status: optional pending/approved/rejected filter
            team_id: optional team filter

        Raises:
            NotFound, Forbidden, ValidationFailed, InfrastructureError
        """
        LeagueService.get_league(league_id)
        roles = RoleResolver.for_user(user, league_id)
        if not roles.can_override:
            logger.warning(f"User {user.pk} denied league submissions listing for league {league_id}")
            raise Forbidden("Only host or governor can view all submissions")

        entries = Entry.objects.filter(member__league_id=league_id)
        if team_id:
            entries = entries.filter(member__team_id=team_id)
        return EntryListing(entries=ReviewQueueService._fetch(entries, status))

    @staticmethod
    def team_entries(user, league_id, status: Optional[str] = None) -> EntryListing:
        """Entries of the caller's team, including the caller's own.

        Captains see their team; hosts and governors who belong to a team
        see it as well. Grading rules are still enforced by validate_entry.
        """
        LeagueService.get_league(league_id)
        roles = RoleResolver.for_user(user, league_id)
        if roles.team_id is None:
            raise Forbidden("You are not assigned to a team in this league")
        if not (roles.can_override or roles.is_captain_of(roles.team_id)):
            logger.warning(f"User {user.pk} denied team submissions listing for league {league_id}")
            raise Forbidden("Only team captain can view team submissions")

        entries = Entry.objects.filter(member__league_id=league_id, member__team_id=roles.team_id)
        return EntryListing(entries=ReviewQueueService._fetch(entries, status), member=roles.member)

    @staticmethod
    def my_entries(user, league_id, status: Optional[str] = None, start_date=None, end_date=None) -> EntryListing:
        """The caller's own entries, each date bound applied on its own."""
        LeagueService.get_league(league_id)
        member = LeagueService.get_active_membership(user, league_id)
        if member is None:
            raise Forbidden("You are not a member of this league")

        entries = Entry.objects.filter(member=member)
        if start_date:
            entries = entries.filter(date__gte=DateRangeService.parse_date(start_date))
        if end_date:
            entries = entries.filter(date__lte=DateRangeService.parse_date(end_date))
        return EntryListing(entries=ReviewQueueService._fetch(entries, status), member=member)

    @staticmethod
    def _fetch(entries, status: Optional[str]) -> List[Entry]:
        if status:
            if status not in (Entry.PENDING, Entry.APPROVED, Entry.REJECTED):
                raise ValidationFailed("status must be pending, approved or rejected")
            entries = entries.filter(status=status)
        try:
            return list(
                entries.select_related('member__user__profile', 'member__team').order_by('-date', '-created_at', '-pk')
            )
        except DatabaseError as exc:
            logger.exception("Entry listing failed")
            raise InfrastructureError(str(exc)) from exc
