from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint

from pasteshare.api.clock import InvalidTestClock, request_now
from pasteshare.api.pastes import get_paste_service
from pasteshare.services.paste_service import PasteNotFoundError, PasteStoreError

html_bp = Blueprint("html", __name__)

_TEXT = {"Content-Type": "text/plain; charset=utf-8"}


@html_bp.route("/p/<paste_id>", methods=["GET"])
def view_paste(paste_id: str):
    """Render a paste as an HTML page, consuming one view."""

    try:
        now = request_now()
    except InvalidTestClock as exc:
        return str(exc), HTTPStatus.BAD_REQUEST, _TEXT

    try:
        page = get_paste_service().render_paste_view(paste_id, now=now)
    except PasteNotFoundError as exc:
        return str(exc), HTTPStatus.NOT_FOUND, _TEXT
    except PasteStoreError:
        return "Server error", HTTPStatus.INTERNAL_SERVER_ERROR, _TEXT

    return page, HTTPStatus.OK, {"Content-Type": "text/html; charset=utf-8"}
