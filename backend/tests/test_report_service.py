"""
Test per i report e l'esportazione CSV.
"""

import asyncio
import uuid
from datetime import date
from decimal import Decimal

import pytest

from koruku.core.exceptions import BusinessValidationError
from koruku.schemas.invoice import InvoiceStatus
from koruku.schemas.report import ClientRevenue, StatusTotals
from koruku.services.report_service import ReportService, month_keys, to_csv

from conftest import rows_result


# ============================================================
# CSV
# ============================================================


class TestToCsv:
    """Test per to_csv."""

    def test_header_from_first_record(self):
        csv = to_csv([{"month": "2025-01", "paid": 10}, {"month": "2025-02", "paid": 0}])
        assert csv == "month,paid\n2025-01,10\n2025-02,0"

    def test_quoting(self):
        """Virgole, doppi apici e a capo vengono racchiusi tra doppi apici."""
        csv = to_csv([{"name": "Acme, Inc", "note": 'Say "hi"', "lines": "a\nb"}])
        assert csv.split("\n", 1)[1] == '"Acme, Inc","Say ""hi""","a\nb"'

    def test_none_is_empty(self):
        assert to_csv([{"a": None, "b": "x"}]) == "a,b\n,x"

    def test_last_value_ending_with_newline(self):
        """Solo il terminatore finale viene tolto, non gli a capo nei valori."""
        assert to_csv([{"note": "riga\n"}]) == 'note\n"riga\n"'

    def test_enum_values(self):
        assert to_csv([{"status": InvoiceStatus.PAID}]) == "status\npaid"

    def test_pydantic_rows_use_aliases(self):
        client_id = uuid.UUID("0f6e2d44-3b8a-4a52-9b7c-1d2e3f405162")
        csv = to_csv([
            ClientRevenue(
                client_id=client_id,
                business="Studio Rossi",
                invoice_count=2,
                total_invoiced=Decimal("300.00"),
                total_paid=Decimal("100.00"),
                outstanding=Decimal("200.00"),
            )
        ])
        header, row = csv.split("\n")
        assert header == "clientId,business,invoiceCount,totalInvoiced,totalPaid,outstanding"
        assert row == f"{client_id},Studio Rossi,2,300.00,100.00,200.00"

    def test_status_totals(self):
        csv = to_csv([StatusTotals(status="paid", count=2, amount=Decimal("10.00"))])
        assert csv == "status,count,amount\npaid,2,10.00"

    def test_empty_rows(self):
        """Nessun record: errore esplicito invece di un file vuoto."""
        with pytest.raises(BusinessValidationError) as exc:
            to_csv([])
        assert exc.value.detail == "No data to export"
        assert exc.value.error_code == "NO_DATA_TO_EXPORT"


class TestMonthKeys:
    """Test per month_keys."""

    def test_crosses_year(self):
        assert month_keys(3, date(2025, 2, 15)) == ["2024-12", "2025-01", "2025-02"]

    def test_single_month(self):
        assert month_keys(1, date(2025, 7, 31)) == ["2025-07"]

    def test_twelve_months(self):
        keys = month_keys(12, date(2025, 12, 1))
        assert keys[0] == "2025-01"
        assert keys[-1] == "2025-12"


# ============================================================
# Report
# ============================================================


class TestReportService:
    """Test per ReportService con risultati di query preparati."""

    def test_client_revenue(self, mock_db):
        client_id = uuid.uuid4()
        mock_db.execute.return_value = rows_result(
            [(client_id, "Studio Rossi", 2, Decimal("300.00"), Decimal("100.00"))]
        )

        report = asyncio.run(ReportService().client_revenue(mock_db))

        assert len(report) == 1
        assert report[0].client_id == client_id
        assert report[0].outstanding == Decimal("200.00")

    def test_client_revenue_counts_partial_payments(self, mock_db):
        """Fatture non pagate: l'incassato viene dagli incassi registrati."""
        mock_db.execute.return_value = rows_result([])

        asyncio.run(ReportService().client_revenue(mock_db))

        query = str(mock_db.execute.call_args.args[0])
        assert "payments" in query
        assert "LEFT OUTER JOIN" in query

    def test_monthly_revenue(self, mock_db):
        """I mesi senza fatture compaiono con importi a zero."""
        mock_db.execute.return_value = rows_result([
            (date(2025, 1, 10), Decimal("100.00"), "paid"),
            (date(2025, 1, 20), Decimal("50.00"), "sent"),
            (date(2025, 3, 1), Decimal("70.00"), "draft"),
        ])

        report = asyncio.run(
            ReportService().monthly_revenue(mock_db, months=3, today=date(2025, 3, 15))
        )

        assert [row.month for row in report] == ["2025-01", "2025-02", "2025-03"]
        assert report[0].invoice_count == 2
        assert report[0].invoiced == Decimal("150.00")
        assert report[0].paid == Decimal("100.00")
        assert report[1].invoice_count == 0
        assert report[1].invoiced == 0
        assert report[2].invoiced == Decimal("70.00")

    def test_monthly_revenue_invalid_months(self, mock_db):
        with pytest.raises(BusinessValidationError):
            asyncio.run(ReportService().monthly_revenue(mock_db, months=0))

    def test_status_totals_derive_overdue(self, mock_db):
        mock_db.execute.return_value = rows_result([
            ("sent", date(2025, 3, 1), Decimal("100.00")),
            ("draft", date(2025, 4, 1), Decimal("30.00")),
            ("paid", date(2025, 1, 1), Decimal("20.00")),
        ])

        report = asyncio.run(ReportService().status_totals(mock_db, today=date(2025, 3, 15)))
        by_status = {row.status: row for row in report}

        assert [row.status for row in report] == ["draft", "sent", "paid", "overdue"]
        assert by_status["overdue"].count == 1
        assert by_status["overdue"].amount == Decimal("100.00")
        assert by_status["sent"].count == 0
        assert by_status["draft"].amount == Decimal("30.00")
        assert by_status["paid"].amount == Decimal("20.00")
