from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from datetime import date
import logging

from ..application.ports.availability_repo import AvailabilityRuleDto, ProviderDto
from ..application.services.appointments_service import AppointmentsService
from ..application.services.availability_service import AvailabilityService
from ..schemas.availability.availability import (
    AvailabilityRuleCreate,
    AvailabilityRuleResponse,
    ProviderResponse,
    ProviderUpsert,
    SlotResponse,
    WindowResponse,
)
from ..schemas.common.common import ErrorResponse, MessageResponse
from .dependencies import get_appointments_service, get_availability_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/providers",
    tags=["Providers"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _provider_response(p: ProviderDto) -> ProviderResponse:
    return ProviderResponse(
        id=p.id,
        name=p.name,
        specialization=p.specialization,
        slot_duration_minutes=p.slot_duration_minutes,
        is_active=p.is_active,
    )


def _rule_response(r: AvailabilityRuleDto) -> AvailabilityRuleResponse:
    return AvailabilityRuleResponse(
        id=r.id,
        provider_id=r.provider_id,
        kind=r.kind,
        weekday=r.weekday,
        exception_date=r.exception_date,
        start_time=r.start_time,
        end_time=r.end_time,
        is_available=r.is_available,
    )


@router.put("/{provider_id}", response_model=ProviderResponse)
def upsert_provider(
    provider_id: str,
    provider_data: ProviderUpsert,
    availability: AvailabilityService = Depends(get_availability_service),
):
    provider = availability.register_provider(
        provider_id,
        provider_data.name,
        specialization=provider_data.specialization,
        slot_duration_minutes=provider_data.slot_duration_minutes,
        is_active=provider_data.is_active,
    )
    return _provider_response(provider)


@router.get("/{provider_id}", response_model=ProviderResponse)
def get_provider(
    provider_id: str,
    availability: AvailabilityService = Depends(get_availability_service),
):
    return _provider_response(availability.get_provider(provider_id))


@router.post("/{provider_id}/availability", response_model=AvailabilityRuleResponse)
def set_availability(
    provider_id: str,
    rule_data: AvailabilityRuleCreate,
    availability: AvailabilityService = Depends(get_availability_service),
):
    rule = AvailabilityRuleDto(
        id=None,
        provider_id=provider_id,
        kind=rule_data.kind.value,
        weekday=rule_data.weekday,
        exception_date=rule_data.exception_date,
        start_time=rule_data.start_time,
        end_time=rule_data.end_time,
        is_available=rule_data.is_available,
    )
    saved = availability.set_availability(provider_id, rule, replace=rule_data.replace)
    return _rule_response(saved)


@router.get("/{provider_id}/availability", response_model=List[AvailabilityRuleResponse])
def list_availability(
    provider_id: str,
    availability: AvailabilityService = Depends(get_availability_service),
):
    return [_rule_response(r) for r in availability.list_rules(provider_id)]


@router.delete("/{provider_id}/availability/{rule_id}", response_model=MessageResponse)
def remove_availability(
    provider_id: str,
    rule_id: int,
    availability: AvailabilityService = Depends(get_availability_service),
):
    availability.remove_rule(provider_id, rule_id)
    logger.info(f"Availability rule {rule_id} removed for provider {provider_id}")
    return MessageResponse(message="Availability rule removed")


@router.get("/{provider_id}/windows", response_model=List[WindowResponse])
def get_windows(
    provider_id: str,
    day: date = Query(..., alias="date"),
    availability: AvailabilityService = Depends(get_availability_service),
):
    availability.get_provider(provider_id)
    return [WindowResponse(start=w.start, end=w.end) for w in availability.windows_for(provider_id, day)]


@router.get("/{provider_id}/slots", response_model=List[SlotResponse])
def get_slots(
    provider_id: str,
    day: date = Query(..., alias="date"),
    duration_minutes: Optional[int] = Query(default=None, gt=0),
    appointments: AppointmentsService = Depends(get_appointments_service),
):
    slots = appointments.get_slots(provider_id, day, duration_minutes=duration_minutes)
    return [
        SlotResponse(provider_id=s.provider_id, start=s.start, end=s.end, duration_minutes=s.duration_minutes)
        for s in slots
    ]
