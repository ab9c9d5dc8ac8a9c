"""Tests for services/export_service.py on a hand-built report snapshot."""

from __future__ import annotations

import csv
import io

import pytest
from openpyxl import load_workbook

from services.export_service import (
    export_report_to_csv,
    export_report_to_excel,
    export_report_to_html,
    export_report_to_pdf,
)


@pytest.fixture
def report_data() -> dict:
    return {
        "framework": {"id": "f1", "name": "nca_ecc", "display_name": "NCA ECC", "version": "2.0"},
        "summary": {
            "compliance_score": 62.5,
            "risk_level": "Medium",
            "implemented_controls": 2,
            "partially_implemented_controls": 1,
            "not_implemented_controls": 1,
            "not_applicable_controls": 0,
            "total_controls": 4,
        },
        "domain_risk_levels": [
            {
                "domain_id": "d1", "domain_name": "governance", "display_name": "Governance",
                "compliance_score": 62.5, "risk_level": "Medium",
                "implemented_controls": 2, "partially_implemented_controls": 1,
                "not_implemented_controls": 1, "not_applicable_controls": 0, "total_controls": 4,
            }
        ],
        "detailed_results": [
            {"control_identifier": "ECC-1.1.1", "control_name": "Policy", "domain_name": "governance", "status": "implemented", "evidence": "policy.pdf", "comments": None},
            {"control_identifier": "ECC-1.1.2", "control_name": "Roles", "domain_name": "governance", "status": "implemented", "evidence": None, "comments": None},
            {"control_identifier": "ECC-1.2.1", "control_name": "Risk <register>", "domain_name": "governance", "status": "partially_implemented", "evidence": None, "comments": "draft"},
            {"control_identifier": "ECC-1.2.2", "control_name": "Audit", "domain_name": "governance", "status": "not_implemented", "evidence": None, "comments": None},
        ],
        "recommendations": [
            {"control_identifier": "ECC-1.2.1", "control_name": "Risk <register>", "domain_name": "governance", "status": "partially_implemented", "priority": "high",
             "recommendation": "Complete the implementation of Risk <register> to fully address risk tracking"},
            {"control_identifier": "ECC-1.2.2", "control_name": "Audit", "domain_name": "governance", "status": "not_implemented", "priority": "low",
             "recommendation": "Implement Audit to address periodic review"},
        ],
    }


def test_excel_sheets(report_data):
    wb = load_workbook(io.BytesIO(export_report_to_excel("Q3 report", report_data)))

    assert wb.sheetnames == ["Summary", "Domains", "Results", "Recommendations"]
    summary = {row[0]: row[1] for row in wb["Summary"].iter_rows(min_row=2, values_only=True)}
    assert summary["Report"] == "Q3 report"
    assert summary["Framework"] == "NCA ECC 2.0"
    assert summary["Compliance Score"] == 62.5
    assert summary["Risk Level"] == "Medium"
    assert wb["Results"].max_row == 5
    assert wb["Results"]["D2"].value == "Implemented"
    assert wb["Recommendations"]["D2"].value == "high"


def test_csv_rows(report_data):
    rows = list(csv.reader(io.StringIO(export_report_to_csv(report_data).decode("utf-8"))))

    assert rows[0] == ["Section", "Control", "Name", "Domain", "Status", "Priority", "Details"]
    assert [r[0] for r in rows[1:]] == ["Result"] * 4 + ["Recommendation"] * 2
    assert rows[1][6] == "policy.pdf"
    assert rows[-1][5] == "low"


def test_pdf(report_data):
    content = export_report_to_pdf("Q3 <report>", report_data)
    assert content.startswith(b"%PDF")


def test_html_is_escaped(report_data):
    document = export_report_to_html("Q3 <report>", report_data).decode("utf-8")

    assert "<title>Q3 &lt;report&gt;</title>" in document
    assert "Risk &lt;register&gt;" in document
    assert "Compliance Score: 62%" in document
    assert "NCA ECC 2.0" in document


def test_empty_snapshot_still_renders():
    assert export_report_to_pdf("Empty", {}).startswith(b"%PDF")
    assert export_report_to_csv({}).decode("utf-8").strip() == "Section,Control,Name,Domain,Status,Priority,Details"
    assert "Unknown framework" in export_report_to_html("Empty", {}).decode("utf-8")
