"""FastAPI router for the onboarding progress service."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from onboardflow.core.types import Classification
from onboardflow.repositories import resolve
from onboardflow.repositories.models import parse_step_key, step_key
from onboardflow.wizard.errors import ErrorLocator
from onboardflow.wizard.readiness import can_advance, validate_step
from onboardflow.wizard.rules import ValidationContext

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response models ---


class UpdateStepRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    step: str
    data: dict[str, Any] | None = None
    form_data: dict[str, Any] | None = Field(default=None, alias="formData")
    email: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


class EmailRequest(BaseModel):
    email: str


class ValidateStepRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    flow_type: str = Field(default="new_business", alias="flowType")
    step: str | int
    form_data: dict[str, Any] = Field(default_factory=dict, alias="formData")
    classification: Classification | None = None


# --- Progress endpoints ---


@router.post("/api/onboarding/update-step")
async def update_step(body: UpdateStepRequest, request: Request) -> dict[str, Any]:
    if not body.email:
        raise HTTPException(status_code=400, detail="Email is required to track onboarding progress")
    repo = request.app.state.progress_repository
    record = await resolve(
        repo.save_step(
            body.email,
            body.step,
            data=body.data,
            form_data=body.form_data,
            user_id=body.user_id,
        )
    )
    if record is None:
        return {
            "success": True,
            "message": "Onboarding progress cleared",
            "data": {"currentStep": step_key(1), "onboardingProgress": None},
        }
    return {
        "success": True,
        "message": "Onboarding step updated",
        "data": {
            "currentStep": step_key(record.current_step),
            "stepData": body.data,
            "formData": body.form_data,
            "onboardingProgress": record.to_wire(),
        },
    }


@router.post("/api/onboarding/get-data")
async def get_data(body: EmailRequest, request: Request) -> dict[str, Any]:
    repo = request.app.state.progress_repository
    record = await resolve(repo.get(body.email))
    if record is None:
        return {
            "success": True,
            "data": {
                "onboardingStep": None,
                "savedFormData": {},
                "message": "No previous onboarding data found",
            },
        }
    return {
        "success": True,
        "data": {
            "onboardingStep": step_key(record.current_step),
            "savedFormData": record.form_data,
            "onboardingData": record.to_wire(),
        },
    }


@router.post("/api/onboarding/reset")
async def reset(body: EmailRequest, request: Request) -> dict[str, Any]:
    repo = request.app.state.progress_repository
    deleted = await resolve(repo.delete(body.email))
    logger.info("Reset onboarding progress for %s (existed=%s)", body.email, deleted)
    return {
        "success": True,
        "message": "Onboarding progress reset successfully",
        "data": {"reset": deleted},
    }


@router.post("/api/onboarding/validate-step")
async def validate_step_endpoint(body: ValidateStepRequest, request: Request) -> dict[str, Any]:
    flows = request.app.state.flows
    flow = flows.get(body.flow_type)
    if flow is None:
        raise HTTPException(status_code=404, detail=f"Unknown flow type: {body.flow_type!r}")

    if isinstance(body.step, int) or str(body.step).startswith("step_") or str(body.step).isdigit():
        number = parse_step_key(body.step)
        if number > flow.step_count:
            raise HTTPException(
                status_code=400,
                detail=f"Step {number} is outside 1..{flow.step_count}",
            )
        step = flow.step(number)
    else:
        step = flow.step_by_id(str(body.step))
        if step is None:
            raise HTTPException(status_code=404, detail=f"Unknown step: {body.step!r}")

    context = ValidationContext.from_answers(
        body.form_data, classification=body.classification, policy=flow.policy
    )
    locator = ErrorLocator(flow)
    errors = locator.order(validate_step(step.id, body.form_data, context))
    ready = can_advance(step.id, body.form_data, context)
    feedback = locator.format(errors)
    return {
        "valid": not errors and ready,
        "step": step.number,
        "stepId": step.id,
        "errors": [{"fieldPath": e.field_path, "message": e.message} for e in errors],
        "message": feedback.message if errors or not ready else None,
        "fields": [f.model_dump() for f in feedback.fields],
    }
