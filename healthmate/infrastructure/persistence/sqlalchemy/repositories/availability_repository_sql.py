from typing import List, Optional
from datetime import date, datetime
from sqlalchemy import or_, and_
from sqlmodel import Session, select

from .....db.models import AvailabilityRule, Provider
from .....application.ports.availability_repo import (
    AvailabilityRepository,
    AvailabilityRuleDto,
    ProviderDto,
)


class SqlAvailabilityRepository(AvailabilityRepository):
    def __init__(self, session: Session):
        self.session = session

    def _provider_to_dto(self, p: Provider) -> ProviderDto:
        return ProviderDto(
            id=p.id,
            name=p.name,
            specialization=p.specialization,
            slot_duration_minutes=p.slot_duration_minutes,
            is_active=bool(p.is_active),
        )

    def _rule_to_dto(self, r: AvailabilityRule) -> AvailabilityRuleDto:
        return AvailabilityRuleDto(
            id=r.id,
            provider_id=r.provider_id,
            kind=r.kind,
            weekday=r.weekday,
            exception_date=r.exception_date,
            start_time=r.start_time,
            end_time=r.end_time,
            is_available=bool(r.is_available),
            created_at=r.created_at,
        )

    def get_provider(self, provider_id: str) -> Optional[ProviderDto]:
        p = self.session.get(Provider, provider_id)
        return self._provider_to_dto(p) if p else None

    def save_provider(self, provider: ProviderDto) -> ProviderDto:
        p = self.session.get(Provider, provider.id)
        if not p:
            p = Provider(id=provider.id, name=provider.name)
        p.name = provider.name
        p.specialization = provider.specialization
        p.slot_duration_minutes = provider.slot_duration_minutes
        p.is_active = provider.is_active
        p.updated_at = datetime.utcnow()
        self.session.add(p)
        self.session.commit()
        self.session.refresh(p)
        return self._provider_to_dto(p)

    def list_rules(self, provider_id: str) -> List[AvailabilityRuleDto]:
        rows = self.session.exec(
            select(AvailabilityRule)
            .where(AvailabilityRule.provider_id == provider_id)
            .order_by(
                AvailabilityRule.kind.desc(),
                AvailabilityRule.weekday,
                AvailabilityRule.exception_date,
                AvailabilityRule.start_time,
            )
        ).all()
        return [self._rule_to_dto(r) for r in rows]

    def rules_for_date(self, provider_id: str, target_date: date) -> List[AvailabilityRuleDto]:
        rows = self.session.exec(
            select(AvailabilityRule)
            .where(AvailabilityRule.provider_id == provider_id)
            .where(
                or_(
                    and_(AvailabilityRule.kind == "recurring", AvailabilityRule.weekday == target_date.weekday()),
                    and_(AvailabilityRule.kind == "exception", AvailabilityRule.exception_date == target_date),
                )
            )
            .order_by(AvailabilityRule.start_time)
        ).all()
        return [self._rule_to_dto(r) for r in rows]

    def get_rule(self, rule_id: int) -> Optional[AvailabilityRuleDto]:
        r = self.session.get(AvailabilityRule, rule_id)
        return self._rule_to_dto(r) if r else None

    def replace_rules(self, remove_ids: List[int], rule: AvailabilityRuleDto) -> AvailabilityRuleDto:
        try:
            for rule_id in remove_ids:
                existing = self.session.get(AvailabilityRule, rule_id)
                if existing:
                    self.session.delete(existing)
            row = AvailabilityRule(
                provider_id=rule.provider_id,
                kind=rule.kind,
                weekday=rule.weekday,
                exception_date=rule.exception_date,
                start_time=rule.start_time,
                end_time=rule.end_time,
                is_available=rule.is_available,
            )
            self.session.add(row)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(row)
        return self._rule_to_dto(row)

    def delete_rule(self, rule_id: int) -> None:
        r = self.session.get(AvailabilityRule, rule_id)
        if not r:
            return
        self.session.delete(r)
        self.session.commit()
