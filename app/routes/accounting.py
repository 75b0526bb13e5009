from flask import Blueprint
from flask_login import login_required

from app.responses import send_success, date_range_args
from app.services.authorization_service import Permissions, permission_required
from app.services.accounting_service import get_financial_summary

accounting_bp = Blueprint('accounting', __name__)


@accounting_bp.route('/summary', methods=['GET'])
@login_required
@permission_required(Permissions.VIEW_REPORTS)
def summary():
    start, end = date_range_args()
    return send_success('Financial summary retrieved', get_financial_summary(start, end))
