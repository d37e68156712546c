from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from rollout_demo.api.dependencies import get_app_settings, get_simulation
from rollout_demo.config import Settings
from rollout_demo.models.schemas import User, UsersPage
from rollout_demo.observability.errors import error_body
from rollout_demo.services.simulation import (
    SimulationSource,
    create_user,
    find_user,
    list_users,
    parse_user_id,
)


router = APIRouter(prefix="/api/v1", tags=["users"])
logger = structlog.get_logger("users")


async def _read_payload(request: Request) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form)

    try:
        payload = await request.json()
    except ValueError:
        # Empty or malformed JSON is validated like an empty object.
        return {}
    return payload if isinstance(payload, dict) else {}


def _required_field(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    # Missing means absent, null, "", false, 0 or NaN; any other value is kept as text.
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and (value == 0 or value != value):
        return None
    return str(value)


@router.get("/users", response_model=UsersPage, response_model_exclude_none=True)
async def get_users(
    settings: Settings = Depends(get_app_settings),
    simulation: SimulationSource = Depends(get_simulation),
) -> UsersPage:
    await simulation.wait(settings.users_max_delay_ms)
    users = list_users()
    return UsersPage(users=users, total=len(users), page=1)


@router.get("/users/{user_id}", response_model=User)
async def get_user(user_id: str, simulation: SimulationSource = Depends(get_simulation)) -> Any:
    if simulation.should_fail():
        logger.error("database_error", user_id=user_id)
        return JSONResponse(status_code=500, content=error_body("Internal server error"))

    parsed = parse_user_id(user_id)
    user = find_user(parsed) if parsed is not None else None
    if user is None:
        return JSONResponse(status_code=404, content=error_body("User not found"))
    return user


@router.post("/users", status_code=201, response_model=User)
async def post_user(request: Request, simulation: SimulationSource = Depends(get_simulation)) -> Any:
    payload = await _read_payload(request)
    name = _required_field(payload, "name")
    email = _required_field(payload, "email")
    if name is None or email is None:
        return JSONResponse(status_code=400, content=error_body("Name and email are required"))

    user = create_user(simulation, name=name, email=email)
    logger.info("user_created", user_id=user.id)
    return user
