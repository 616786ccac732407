from dataclasses import dataclass
from typing import List, Optional
from datetime import date, time
import logging

from ..ports.availability_repo import AvailabilityRepository, AvailabilityRuleDto, ProviderDto
from ...exceptions import NotFoundError, ValidationError
from ...scheduling.availability import RuleKind, TimeWindow, resolve_windows

logger = logging.getLogger(__name__)


def _overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    return a_start < b_end and b_start < a_end


@dataclass
class AvailabilityService:
    repo: AvailabilityRepository
    default_slot_duration_minutes: int = 30
    max_slot_duration_minutes: int = 480

    def register_provider(self, provider_id: str, name: str, specialization: Optional[str] = None, slot_duration_minutes: Optional[int] = None, is_active: bool = True) -> ProviderDto:
        if not provider_id or not provider_id.strip():
            raise ValidationError("Provider id is required")
        if not name or not name.strip():
            raise ValidationError("Provider name is required")
        duration = slot_duration_minutes or self.default_slot_duration_minutes
        self.check_duration(duration)
        provider = ProviderDto(
            id=provider_id,
            name=name.strip(),
            specialization=specialization,
            slot_duration_minutes=duration,
            is_active=is_active,
        )
        return self.repo.save_provider(provider)

    def get_provider(self, provider_id: str) -> ProviderDto:
        provider = self.repo.get_provider(provider_id)
        if not provider or not provider.is_active:
            raise NotFoundError("Provider not found")
        return provider

    def set_availability(self, provider_id: str, rule: AvailabilityRuleDto, replace: bool = True) -> AvailabilityRuleDto:
        if rule.kind == RuleKind.RECURRING:
            if rule.weekday is None:
                raise ValidationError("Recurring rules need a weekday")
            return self.set_recurring_rule(provider_id, rule.weekday, rule.start_time, rule.end_time, replace=replace)
        if rule.kind == RuleKind.EXCEPTION:
            if rule.exception_date is None:
                raise ValidationError("Exceptions need a date")
            return self.set_exception(provider_id, rule.exception_date, rule.is_available, rule.start_time, rule.end_time)
        raise ValidationError(f"Unknown rule kind: {rule.kind}")

    def set_recurring_rule(self, provider_id: str, weekday: int, start: time, end: time, replace: bool = True) -> AvailabilityRuleDto:
        """Set a weekly window.

        With replace every window of that weekday is dropped first; without
        it the window is added next to the existing ones, overwriting one
        with the same start.
        """
        self.get_provider(provider_id)
        if weekday is None or not 0 <= weekday <= 6:
            raise ValidationError("Weekday must be between 0 (Monday) and 6 (Sunday)")
        self._check_range(start, end)

        same_day = [
            r for r in self.repo.list_rules(provider_id)
            if r.kind == RuleKind.RECURRING and r.weekday == weekday
        ]
        if replace:
            remove = [r.id for r in same_day]
        else:
            remove = [r.id for r in same_day if r.start_time == start]
            for r in same_day:
                if r.id not in remove and _overlaps(start, end, r.start_time, r.end_time):
                    raise ValidationError(
                        f"Window {start:%H:%M}-{end:%H:%M} overlaps {r.start_time:%H:%M}-{r.end_time:%H:%M}"
                    )

        rule = AvailabilityRuleDto(
            id=None,
            provider_id=provider_id,
            kind=RuleKind.RECURRING.value,
            weekday=weekday,
            exception_date=None,
            start_time=start,
            end_time=end,
            is_available=True,
        )
        saved = self.repo.replace_rules(remove, rule)
        logger.info(f"Recurring availability set for provider {provider_id} on weekday {weekday}: {start}-{end}")
        return saved

    def set_exception(self, provider_id: str, exception_date: date, is_available: bool, start: Optional[time] = None, end: Optional[time] = None) -> AvailabilityRuleDto:
        """Record a one-day override, replacing any earlier one for that date."""
        self.get_provider(provider_id)
        if is_available:
            self._check_range(start, end)
        elif (start is None) != (end is None):
            raise ValidationError("Provide both start and end or neither")

        remove = [
            r.id for r in self.repo.list_rules(provider_id)
            if r.kind == RuleKind.EXCEPTION and r.exception_date == exception_date
        ]
        rule = AvailabilityRuleDto(
            id=None,
            provider_id=provider_id,
            kind=RuleKind.EXCEPTION.value,
            weekday=None,
            exception_date=exception_date,
            start_time=start if is_available else None,
            end_time=end if is_available else None,
            is_available=is_available,
        )
        saved = self.repo.replace_rules(remove, rule)
        logger.info(f"Availability exception set for provider {provider_id} on {exception_date} (available={is_available})")
        return saved

    def windows_for(self, provider_id: str, target_date: date) -> List[TimeWindow]:
        return resolve_windows(self.repo.rules_for_date(provider_id, target_date), target_date)

    def list_rules(self, provider_id: str) -> List[AvailabilityRuleDto]:
        self.get_provider(provider_id)
        return self.repo.list_rules(provider_id)

    def remove_rule(self, provider_id: str, rule_id: int) -> None:
        rule = self.repo.get_rule(rule_id)
        if not rule or rule.provider_id != provider_id:
            raise NotFoundError("Availability rule not found")
        self.repo.delete_rule(rule_id)

    def _check_range(self, start: Optional[time], end: Optional[time]) -> None:
        if start is None or end is None:
            raise ValidationError("Start and end times are required")
        if start >= end:
            raise ValidationError("Start time must be before end time")

    def check_duration(self, duration_minutes: int) -> None:
        if duration_minutes <= 0 or duration_minutes > self.max_slot_duration_minutes:
            raise ValidationError(f"Slot duration must be between 1 and {self.max_slot_duration_minutes} minutes")
