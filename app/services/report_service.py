"""
REPORT SERVICE
==============

Builds report row sets from the ledger and renders them.

A report is a plain dict:
    {
        'key': 'financial',
        'title': 'Financial Report',
        'period': {'start': ..., 'end': ...},
        'summary': [(label, value), ...],
        'tables': [{'name': ..., 'columns': [...], 'rows': [{...}, ...]}],
    }

render_excel() writes it with pandas/openpyxl, render_pdf() turns
templates/reports/report.html into a PDF with WeasyPrint.
"""

import logging
from datetime import datetime
from io import BytesIO

import pandas as pd
from flask import current_app, render_template
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from app.errors import AppError, ValidationError
from app.models import (
    Due, Loan, LoanStatus, MemberDue, ObligationStatus, Payment, PaymentStatus, Transaction,
    User, UserRole
)
from app.services.accounting_service import get_financial_summary
from app.services.helpers import filter_by_date

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color='1F4E78', end_color='1F4E78', fill_type='solid')
HEADER_FONT = Font(bold=True, color='FFFFFF', size=11)
TITLE_FONT = Font(bold=True, size=14)


def _date(value):
    return value.strftime('%Y-%m-%d') if value else ''


def _name(user):
    return user.full_name if user else ''


def _period(start, end):
    return {'start': _date(start) or 'Beginning', 'end': _date(end) or 'Today'}


def _report(key, title, start, end, summary, tables):
    return {
        'key': key,
        'title': title,
        'period': _period(start, end),
        'generated_at': datetime.utcnow().strftime('%Y-%m-%d %H:%M'),
        'summary': summary,
        'tables': tables,
    }


# ============================================================
# REPORT BUILDERS
# ============================================================

def build_financial_report(start=None, end=None):
    summary = get_financial_summary(start, end)
    query = filter_by_date(Transaction.query, Transaction.date, start, end)
    transactions = query.order_by(Transaction.date.desc()).all()

    return _report('financial', 'Financial Report', start, end, [
        ('Total Income', summary['total_income']),
        ('Total Expenses', summary['total_expenses']),
        ('Net Balance', summary['net_balance']),
        ('Transactions', len(transactions)),
    ], [
        {
            'name': 'Transactions',
            'columns': ['Date', 'Title', 'Type', 'Category', 'Amount'],
            'rows': [{
                'Date': _date(t.date),
                'Title': t.title,
                'Type': t.type,
                'Category': t.category,
                'Amount': t.amount,
            } for t in transactions],
        },
        {
            'name': 'Income by Category',
            'columns': ['Category', 'Total'],
            'rows': [{'Category': r['category'], 'Total': r['total']} for r in summary['income_by_category']],
        },
        {
            'name': 'Expenses by Category',
            'columns': ['Category', 'Total'],
            'rows': [{'Category': r['category'], 'Total': r['total']} for r in summary['expenses_by_category']],
        },
    ])


def build_members_report(start=None, end=None):
    query = User.query.filter(User.role == UserRole.MEMBER.value)
    query = filter_by_date(query, User.date_joined, start, end)
    members = query.order_by(User.date_joined.desc()).all()
    active = sum(1 for m in members if m.is_active)

    return _report('members', 'Members Report', start, end, [
        ('Total Members', len(members)),
        ('Active Members', active),
        ('Inactive Members', len(members) - active),
    ], [{
        'name': 'Members',
        'columns': ['Membership ID', 'Name', 'Email', 'Phone', 'Date Joined', 'Status'],
        'rows': [{
            'Membership ID': m.membership_id,
            'Name': m.full_name,
            'Email': m.email,
            'Phone': m.phone_number,
            'Date Joined': _date(m.date_joined),
            'Status': 'Active' if m.is_active else 'Inactive',
        } for m in members],
    }])


def build_payments_report(start=None, end=None):
    query = filter_by_date(Payment.query, Payment.payment_date, start, end)
    payments = query.order_by(Payment.payment_date.desc()).all()

    def total(status):
        return sum(p.amount for p in payments if p.status == status)

    return _report('payments', 'Payments Report', start, end, [
        ('Total Payments', len(payments)),
        ('Approved Amount', total(PaymentStatus.APPROVED.value)),
        ('Pending Amount', total(PaymentStatus.PENDING.value)),
        ('Rejected Amount', total(PaymentStatus.REJECTED.value)),
    ], [{
        'name': 'Payments',
        'columns': ['Date', 'Member', 'Description', 'Type', 'Method', 'Status', 'Amount'],
        'rows': [{
            'Date': _date(p.payment_date),
            'Member': _name(p.user),
            'Description': p.description,
            'Type': p.payment_type or '',
            'Method': p.payment_method or '',
            'Status': p.status,
            'Amount': p.amount,
        } for p in payments],
    }])


def build_loans_report(start=None, end=None):
    query = filter_by_date(Loan.query, Loan.application_date, start, end)
    loans = query.order_by(Loan.application_date.desc()).all()
    disbursed = [l for l in loans if l.status in (
        LoanStatus.APPROVED.value, LoanStatus.PAID.value, LoanStatus.DEFAULTED.value
    )]
    total_disbursed = sum(l.amount for l in disbursed)
    total_repaid = sum(l.total_repaid or 0 for l in disbursed)

    return _report('loans', 'Loans Report', start, end, [
        ('Total Loans', len(loans)),
        ('Total Disbursed', total_disbursed),
        ('Total Repaid', total_repaid),
        ('Outstanding', sum(l.get_remaining_amount() for l in disbursed)),
    ], [{
        'name': 'Loans',
        'columns': ['Applied', 'Member', 'Purpose', 'Months', 'Interest %', 'Status',
                    'Amount', 'Repaid', 'Remaining'],
        'rows': [{
            'Applied': _date(l.application_date),
            'Member': _name(l.user),
            'Purpose': l.purpose,
            'Months': l.duration_in_months,
            'Interest %': l.interest_rate,
            'Status': l.status,
            'Amount': l.amount,
            'Repaid': l.total_repaid or 0,
            'Remaining': l.get_remaining_amount(),
        } for l in loans],
    }])


def build_dues_report(start=None, end=None):
    query = filter_by_date(Due.query, Due.due_date, start, end)
    dues = query.order_by(Due.due_date.desc()).all()
    due_ids = [d.id for d in dues]
    member_dues = MemberDue.query.filter(MemberDue.due_id.in_(due_ids)).all() if due_ids else []

    expected = sum(md.due.amount for md in member_dues)
    collected = sum(md.amount_paid for md in member_dues)

    return _report('dues', 'Dues Report', start, end, [
        ('Dues', len(dues)),
        ('Expected', expected),
        ('Collected', collected),
        ('Outstanding', sum(md.balance for md in member_dues)),
    ], [
        {
            'name': 'Dues',
            'columns': ['Name', 'Due Date', 'Amount', 'Recurring', 'Assigned', 'Paid'],
            'rows': [{
                'Name': d.name,
                'Due Date': _date(d.due_date),
                'Amount': d.amount,
                'Recurring': d.frequency if d.is_recurring else 'No',
                'Assigned': d.members.count(),
                'Paid': d.members.filter_by(status=ObligationStatus.PAID.value).count(),
            } for d in dues],
        },
        {
            'name': 'Member Dues',
            'columns': ['Member', 'Due', 'Amount Paid', 'Balance', 'Status', 'Paid Date'],
            'rows': [{
                'Member': _name(md.user),
                'Due': md.due.name,
                'Amount Paid': md.amount_paid,
                'Balance': md.balance,
                'Status': md.status,
                'Paid Date': _date(md.paid_date),
            } for md in member_dues],
        },
    ])


REPORT_BUILDERS = {
    'financial': build_financial_report,
    'members': build_members_report,
    'payments': build_payments_report,
    'loans': build_loans_report,
    'dues': build_dues_report,
}


def build_report(key, start=None, end=None):
    builder = REPORT_BUILDERS.get(key)
    if builder is None:
        raise ValidationError(f"Unknown report: {key}")
    return builder(start, end)


# ============================================================
# RENDERING
# ============================================================

def _style_header(worksheet, columns, row=1):
    for col_num, column in enumerate(columns, 1):
        cell = worksheet.cell(row=row, column=col_num)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal='center', vertical='center')
        worksheet.column_dimensions[get_column_letter(col_num)].width = max(len(str(column)) + 4, 14)


def render_excel(report):
    """Write the report to an .xlsx workbook: one Summary sheet plus one sheet per table."""
    output = BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        summary_df = pd.DataFrame(report['summary'], columns=['Metric', 'Value'])
        summary_df.to_excel(writer, sheet_name='Summary', index=False, startrow=3)

        worksheet = writer.sheets['Summary']
        worksheet['A1'] = f"{current_app.config['ORGANIZATION_NAME']} - {report['title']}"
        worksheet['A1'].font = TITLE_FONT
        worksheet['A2'] = f"Period: {report['period']['start']} to {report['period']['end']}"
        _style_header(worksheet, summary_df.columns, row=4)
        worksheet.column_dimensions['A'].width = 28

        for table in report['tables']:
            # Excel caps sheet names at 31 characters
            sheet_name = table['name'][:31]
            df = pd.DataFrame(table['rows'], columns=table['columns'])
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            _style_header(writer.sheets[sheet_name], table['columns'])

    logger.info("Rendered %s report to Excel", report['key'])
    return output.getvalue()


def render_pdf(report):
    """Render the report template to PDF bytes. 503 when WeasyPrint cannot load."""
    # Lazy import - WeasyPrint needs system libraries (pango, cairo)
    try:
        from weasyprint import HTML
    except (ImportError, OSError) as e:
        logger.error("PDF generation unavailable: %s", e)
        raise AppError(f"PDF generation is not available in this environment: {str(e)}", 503)

    html_string = render_template(
        'reports/report.html',
        report=report,
        organization=current_app.config['ORGANIZATION_NAME'],
        currency=current_app.config['CURRENCY_SYMBOL']
    )
    pdf = HTML(string=html_string).write_pdf()
    logger.info("Rendered %s report to PDF", report['key'])
    return pdf
