from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, request
from pydantic import ValidationError

from pasteshare.api.clock import InvalidTestClock, request_now
from pasteshare.api.schemas import (
    HealthResponse,
    PasteCreateRequest,
    PasteCreatedResponse,
    PasteDataResponse,
)
from pasteshare.services.paste_service import (
    PasteNotFoundError,
    PasteService,
    PasteStoreError,
    PasteValidationError,
)

api_bp = Blueprint("api", __name__, url_prefix="/api")

SERVER_ERROR = {"error": "Server error"}


def get_paste_service() -> PasteService:
    return current_app.extensions["pasteshare.paste_service"]


@api_bp.route("/healthz", methods=["GET"])
def health() -> tuple[dict, int]:
    """Health check reflecting store reachability."""

    ok = get_paste_service().ping()
    body = HealthResponse(ok=ok).model_dump()
    return body, HTTPStatus.OK if ok else HTTPStatus.INTERNAL_SERVER_ERROR


@api_bp.route("/pastes", methods=["POST"])
def create_paste() -> tuple[dict, int]:
    """
    Create a new paste.

    Type validation is handled by Pydantic; business rules by the service layer.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {"error": "Request body must be a JSON object"}, HTTPStatus.BAD_REQUEST

    try:
        payload = PasteCreateRequest.model_validate(data)
    except ValidationError as exc:
        details = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return {"error": "Invalid request body", "details": details}, HTTPStatus.BAD_REQUEST

    try:
        created = get_paste_service().create_paste(
            content=payload.content,
            ttl_seconds=payload.ttl_seconds,
            max_views=payload.max_views,
        )
    except PasteValidationError as exc:
        return {"error": str(exc)}, HTTPStatus.BAD_REQUEST
    except PasteStoreError:
        return SERVER_ERROR, HTTPStatus.INTERNAL_SERVER_ERROR

    return PasteCreatedResponse(**created).model_dump(), HTTPStatus.CREATED


@api_bp.route("/pastes/<paste_id>", methods=["GET"])
def get_paste(paste_id: str) -> tuple[dict, int]:
    """Return paste content as JSON, consuming one view."""

    try:
        now = request_now()
    except InvalidTestClock as exc:
        return {"error": str(exc)}, HTTPStatus.BAD_REQUEST

    try:
        view = get_paste_service().get_paste_data(paste_id, now=now)
    except PasteNotFoundError as exc:
        return {"error": str(exc)}, HTTPStatus.NOT_FOUND
    except PasteStoreError:
        return SERVER_ERROR, HTTPStatus.INTERNAL_SERVER_ERROR

    return PasteDataResponse(**view).model_dump(), HTTPStatus.OK
