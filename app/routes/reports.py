"""
REPORT ROUTES
=============

GET /api/reports/<report>/<pdf|excel>?startDate=...&endDate=...
"""

from flask import Blueprint, Response
from flask_login import login_required

from app.errors import ValidationError
from app.responses import date_range_args
from app.services.authorization_service import Permissions, permission_required
from app.services.report_service import build_report, render_excel, render_pdf

reports_bp = Blueprint('reports', __name__)

FORMATS = {
    'pdf': ('application/pdf', 'pdf', render_pdf),
    'excel': ('application/vnd.openxmlformats-officedocument.spreadsheetml.sheet', 'xlsx', render_excel),
}


@reports_bp.route('/<report_key>/<fmt>', methods=['GET'])
@login_required
@permission_required(Permissions.VIEW_REPORTS)
def download_report(report_key, fmt):
    if fmt not in FORMATS:
        raise ValidationError(f"Unsupported report format: {fmt}")
    content_type, extension, render = FORMATS[fmt]

    start, end = date_range_args()
    report = build_report(report_key, start, end)
    content = render(report)

    filename = f"{report_key}-report.{extension}"
    return Response(
        content,
        mimetype=content_type,
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )
