"""
Workbook exchange routes: master and single-PI export, master and label import.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Request, UploadFile, File
from fastapi.responses import JSONResponse, StreamingResponse

from pi_dashboard import workbook
from pi_dashboard.aggregation import DashboardScope, resolve_view
from pi_dashboard.dependencies import guard, resolve_request
from pi_dashboard.resolver import effective_unit_id, find_template
from pi_dashboard.roles import ACTION_EDIT_STRUCTURE, is_admin

logger = logging.getLogger(__name__)

router = APIRouter()


def _can_view(actor, subject) -> bool:
    return is_admin(actor) or actor.id == subject.id


def _xlsx_response(output, filename: str):
    return StreamingResponse(
        output,
        media_type=workbook.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("/{year}/units/{unit_id}/export")
async def export_master(request: Request, year: str, unit_id: str, scope: Optional[str] = None):
    """Download everything the unit's dashboard shows as one master sheet."""
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    if not _can_view(actor, subject):
        return JSONResponse({"error": "Access denied"}, status_code=403)
    try:
        dashboard_scope = DashboardScope((scope or DashboardScope.ALL_UNITS.value).upper())
    except ValueError:
        return JSONResponse({"error": "Unknown scope"}, status_code=400)

    templates = resolve_view(store, year, actor, subject, dashboard_scope)
    output = workbook.build_master_workbook(templates)
    return _xlsx_response(output, workbook.master_filename(subject, year, store.board))


@router.get("/{year}/units/{unit_id}/templates/{template_id}/export")
async def export_template(request: Request, year: str, unit_id: str, template_id: str):
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    if not _can_view(actor, subject):
        return JSONResponse({"error": "Access denied"}, status_code=403)
    if find_template(store, year, template_id, effective_unit_id(store, subject)) is None:
        return JSONResponse({"error": "Template not found"}, status_code=404)

    templates = resolve_view(store, year, actor, subject)
    template = next((t for t in templates if t.id == template_id), None)
    if template is None:
        return JSONResponse({"error": "Template is hidden for this unit"}, status_code=404)

    output = workbook.build_pi_workbook(template)
    return _xlsx_response(output, workbook.pi_filename(subject, template_id, year))


@router.post("/{year}/units/{unit_id}/import")
async def import_master(request: Request, year: str, unit_id: str, file: UploadFile = File(...)):
    """Load a master template workbook into the unit's scope."""
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_STRUCTURE)
    if error:
        return error

    contents = await file.read()
    try:
        rows = workbook.read_rows(contents)
    except ValueError as e:
        logger.warning("Master import rejected for %s: %s", subject.id, e)
        return JSONResponse({"error": "Import failed, check template format"}, status_code=400)

    result = workbook.import_master_template(store, year, subject, rows)
    status_code = 200 if result.ok else 400
    return JSONResponse(result.to_dict(), status_code=status_code)


@router.post("/{year}/units/{unit_id}/templates/{template_id}/labels/import")
async def import_labels(request: Request, year: str, unit_id: str, template_id: str,
                        file: UploadFile = File(...)):
    """Overwrite activity and indicator labels from an uploaded sheet."""
    actor, subject, store, error = resolve_request(request, unit_id)
    if error:
        return error
    error = guard(actor, subject, ACTION_EDIT_STRUCTURE)
    if error:
        return error
    if find_template(store, year, template_id, effective_unit_id(store, subject)) is None:
        return JSONResponse({"error": "Template not found"}, status_code=404)

    contents = await file.read()
    result = workbook.import_labels_from_workbook(store, year, subject, template_id, contents)
    status_code = 200 if result.ok else 400
    return JSONResponse(result.to_dict(), status_code=status_code)
