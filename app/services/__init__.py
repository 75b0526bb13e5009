"""
Services Package
================

Business logic layer for Financial Hub.

All settlement, ledger and authorization operations are handled here.
Routes should call these services, not manipulate models directly.
"""

from app.services.authorization_service import (
    ROLE_LEVELS,
    Permissions,
    has_permission,
    permission_required,
    is_admin,
    can_view_user_records,
    can_view_record,
    require_authorization
)

from app.services.payment_service import (
    create_payment,
    settle_payment,
    approve_payment,
    reject_payment,
    record_admin_payment,
    ADMIN_PAYMENT_HANDLERS
)

from app.services.loan_service import (
    create_loan,
    approve_loan,
    reject_loan,
    mark_loan_defaulted,
    create_loan_repayment,
    settle_loan_repayment,
    refresh_loan_repayment_status,
    reconcile_loan
)

from app.services.obligation_service import (
    create_due,
    create_levy,
    assign_obligation,
    update_due,
    update_levy,
    delete_due,
    delete_levy,
    update_member_obligation
)

from app.services.pledge_service import fulfill_pledge
from app.services.donation_service import process_donation

from app.services.accounting_service import (
    stage_transaction,
    get_financial_summary
)

from app.services.report_service import (
    build_report,
    render_excel,
    render_pdf
)
