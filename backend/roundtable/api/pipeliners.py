"""Pipeliner endpoints: roster, eligibility and promotion to member."""

from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from roundtable.api.deps import get_ledger_service, get_promotion_orchestrator, get_roster_service
from roundtable.domain.membership import schemas
from roundtable.domain.membership.ledger import LedgerService
from roundtable.domain.membership.promotion import PromotionOrchestrator
from roundtable.domain.membership.roster import RosterService

router = APIRouter(prefix="/pipeliners", tags=["pipeliners"])


@router.post("", response_model=schemas.PipelinerResponse, status_code=status.HTTP_201_CREATED)
async def create_pipeliner_endpoint(
	payload: schemas.PipelinerCreateRequest,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.PipelinerResponse:
	pipeliner = await roster.create_pipeliner(**payload.model_dump())
	return schemas.PipelinerResponse.model_validate(pipeliner)


@router.get("", response_model=List[schemas.PipelinerResponse])
async def list_pipeliners_endpoint(
	status_filter: Optional[str] = Query(default=None, alias="status"),
	roster: RosterService = Depends(get_roster_service),
) -> List[schemas.PipelinerResponse]:
	pipeliners = await roster.list_pipeliners(status=status_filter)
	return [schemas.PipelinerResponse.model_validate(pipeliner) for pipeliner in pipeliners]


@router.get("/{pipeliner_id}", response_model=schemas.PipelinerResponse)
async def get_pipeliner_endpoint(
	pipeliner_id: UUID,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.PipelinerResponse:
	return schemas.PipelinerResponse.model_validate(await roster.get_pipeliner(pipeliner_id))


@router.patch("/{pipeliner_id}", response_model=schemas.PipelinerResponse)
async def update_pipeliner_endpoint(
	pipeliner_id: UUID,
	payload: schemas.PipelinerUpdateRequest,
	roster: RosterService = Depends(get_roster_service),
) -> schemas.PipelinerResponse:
	pipeliner = await roster.update_pipeliner(pipeliner_id, payload.model_dump(exclude_unset=True))
	return schemas.PipelinerResponse.model_validate(pipeliner)


@router.delete("/{pipeliner_id}", status_code=204, response_class=Response, response_model=None)
async def delete_pipeliner_endpoint(
	pipeliner_id: UUID,
	roster: RosterService = Depends(get_roster_service),
) -> None:
	await roster.delete_pipeliner(pipeliner_id)
	return None


@router.get("/{pipeliner_id}/eligibility", response_model=schemas.PipelinerEligibilityResponse)
async def pipeliner_eligibility_endpoint(
	pipeliner_id: UUID,
	ledger: LedgerService = Depends(get_ledger_service),
) -> schemas.PipelinerEligibilityResponse:
	return schemas.PipelinerEligibilityResponse.model_validate(await ledger.get_pipeliner_eligibility(pipeliner_id))


@router.post(
	"/{pipeliner_id}/promote",
	response_model=schemas.MemberResponse,
	status_code=status.HTTP_201_CREATED,
)
async def promote_pipeliner_endpoint(
	pipeliner_id: UUID,
	payload: schemas.PromoteToMemberRequest,
	orchestrator: PromotionOrchestrator = Depends(get_promotion_orchestrator),
) -> schemas.MemberResponse:
	member = await orchestrator.promote_to_member(
		pipeliner_id,
		payload.member_number,
		payload.join_date or date.today(),
	)
	return schemas.MemberResponse.model_validate(member)


@router.post("/{pipeliner_id}/deactivate", response_model=schemas.PipelinerResponse)
async def deactivate_pipeliner_endpoint(
	pipeliner_id: UUID,
	orchestrator: PromotionOrchestrator = Depends(get_promotion_orchestrator),
) -> schemas.PipelinerResponse:
	return schemas.PipelinerResponse.model_validate(await orchestrator.deactivate_pipeliner(pipeliner_id))
