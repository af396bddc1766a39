"""
Common dependencies for route handlers.
"""
from typing import Optional
from fastapi import Request
from fastapi.responses import JSONResponse

from pi_dashboard.config import BOARD_ACCOMPLISHMENT, BOARDS, UNIT_HEADER
from pi_dashboard.roles import UnauthorizedMutation, authorize, is_admin
from pi_dashboard.store import OverrideStore, create_store
from pi_dashboard.units import Unit, get_unit

# One store per board for the life of the process
_stores = {}


def get_current_unit(request: Request) -> Optional[Unit]:
    """
    Get the calling unit from the request header.
    Returns None when the header is missing or names no unit.
    """
    return get_unit(request.headers.get(UNIT_HEADER, ''))


def get_board(request: Request) -> Optional[str]:
    board = request.query_params.get('board', BOARD_ACCOMPLISHMENT)
    return board if board in BOARDS else None


def get_store(board: str) -> OverrideStore:
    store = _stores.get(board)
    if store is None:
        store = create_store(board)
        _stores[board] = store
    return store


def reset_stores():
    """Forget cached stores (tests and config reloads)."""
    _stores.clear()


def resolve_request(request: Request, unit_id: Optional[str] = None):
    """
    Common preamble for PI routes.
    Returns (actor, subject, store, None) or (None, None, None, error_response).
    """
    actor = get_current_unit(request)
    if not actor:
        return None, None, None, JSONResponse({"error": "Unknown unit"}, status_code=401)

    board = get_board(request)
    if not board:
        return None, None, None, JSONResponse({"error": "Unknown board"}, status_code=400)

    subject = get_unit(unit_id) if unit_id else actor
    if not subject:
        return None, None, None, JSONResponse({"error": "Unit not found"}, status_code=404)

    return actor, subject, get_store(board), None


def guard(actor: Unit, subject: Optional[Unit], action: str, consolidated: bool = False):
    """Return a 403 response when actor lacks authority, else None."""
    try:
        authorize(actor, subject, action, consolidated)
    except UnauthorizedMutation as e:
        return JSONResponse({"error": str(e)}, status_code=403)
    return None


def require_admin(request: Request):
    """
    Check that the caller is an administrative unit.
    Returns (unit, None) if authorized, (None, error_response) otherwise.
    """
    unit = get_current_unit(request)
    if not unit:
        return None, JSONResponse({"error": "Unknown unit"}, status_code=401)
    if not is_admin(unit):
        return None, JSONResponse({"error": "Admin access required"}, status_code=403)
    return unit, None
