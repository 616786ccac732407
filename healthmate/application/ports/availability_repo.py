from dataclasses import dataclass
from typing import List, Optional, Protocol
from datetime import datetime, date, time


@dataclass
class ProviderDto:
    id: str
    name: str
    specialization: Optional[str]
    slot_duration_minutes: int
    is_active: bool


@dataclass
class AvailabilityRuleDto:
    id: Optional[int]
    provider_id: str
    kind: str
    weekday: Optional[int]
    exception_date: Optional[date]
    start_time: Optional[time]
    end_time: Optional[time]
    is_available: bool
    created_at: Optional[datetime] = None


class AvailabilityRepository(Protocol):
    def get_provider(self, provider_id: str) -> Optional[ProviderDto]:
        ...

    def save_provider(self, provider: ProviderDto) -> ProviderDto:
        ...

    def list_rules(self, provider_id: str) -> List[AvailabilityRuleDto]:
        ...

    def rules_for_date(self, provider_id: str, target_date: date) -> List[AvailabilityRuleDto]:
        ...

    def get_rule(self, rule_id: int) -> Optional[AvailabilityRuleDto]:
        ...

    def replace_rules(self, remove_ids: List[int], rule: AvailabilityRuleDto) -> AvailabilityRuleDto:
        """Delete remove_ids and insert rule in one transaction."""
        ...

    def delete_rule(self, rule_id: int) -> None:
        ...
