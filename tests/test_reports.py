from io import BytesIO

import pytest
from openpyxl import load_workbook

from app.errors import ValidationError
from app.services import accounting_service, report_service


def test_financial_report_rows(admin):
    accounting_service.create_transaction(
        {'title': 'Dues', 'amount': 1000, 'type': 'income', 'category': 'Payment'}, admin.id
    )

    report = report_service.build_report('financial')

    assert report['title'] == 'Financial Report'
    assert ('Net Balance', 1000.0) in report['summary']
    assert report['tables'][0]['rows'][0]['Amount'] == 1000.0


def test_excel_has_summary_and_table_sheets(admin, member, make_payment):
    make_payment(member, amount=750.0)

    content = report_service.render_excel(report_service.build_report('payments'))

    workbook = load_workbook(BytesIO(content))
    assert workbook.sheetnames == ['Summary', 'Payments']
    sheet = workbook['Payments']
    assert sheet['A1'].value == 'Date'
    assert sheet['G2'].value == 750.0
    assert 'Payments Report' in workbook['Summary']['A1'].value


def test_unknown_report(app):
    with pytest.raises(ValidationError):
        report_service.build_report('salaries')


@pytest.mark.parametrize('key', ['financial', 'members', 'payments', 'loans', 'dues'])
def test_excel_endpoint(login, admin, key):
    response = login(admin).get(f'/api/reports/{key}/excel')
    assert response.status_code == 200
    assert response.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    assert f'{key}-report.xlsx' in response.headers['Content-Disposition']


def test_reports_need_admin(login, member):
    response = login(member).get('/api/reports/financial/excel')
    assert response.status_code == 403


def test_unsupported_format(login, admin):
    response = login(admin).get('/api/reports/financial/csv')
    assert response.status_code == 400
