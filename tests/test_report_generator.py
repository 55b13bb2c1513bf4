"""Tests for report rendering: severity summary, escaping, and the PDF-to-HTML fallback."""

import asyncio
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from app.services.report_generator import (
    GeneratedReport,
    generate_report,
    render_report_html,
    report_filename,
    save_report,
    severity_summary,
)


def finding(title: str, severity: str, **extra) -> SimpleNamespace:
    values = {
        "title": title,
        "description": f"{title} description",
        "severity": severity,
        "category": "web_application",
        "status": "open",
        "cvss_score": None,
        "affected_url": None,
        "reported_by": None,
        "created_at": datetime(2026, 3, 1, 12, 0),
    }
    values.update(extra)
    return SimpleNamespace(**values)


def fake_settings() -> MagicMock:
    settings = MagicMock()
    settings.PDF_RENDER_TIMEOUT_SEC = 1.0
    settings.CHROMIUM_EXECUTABLE_PATH = None
    return settings


class TestSeveritySummary(unittest.TestCase):
    def test_zero_findings_all_counts_zero(self) -> None:
        self.assertEqual(severity_summary([]), {"critical": 0, "high": 0, "medium": 0, "low": 0})

    def test_groups_by_severity(self) -> None:
        findings = [finding("a", "critical"), finding("b", "high"), finding("c", "high"), finding("d", "LOW")]
        self.assertEqual(severity_summary(findings), {"critical": 1, "high": 2, "medium": 0, "low": 1})


class TestRenderHtml(unittest.TestCase):
    def test_zero_findings_is_well_formed(self) -> None:
        html = render_report_html("Empty engagement", [])
        self.assertTrue(html.startswith("<!DOCTYPE html>"))
        self.assertTrue(html.rstrip().endswith("</html>"))
        for level in ("critical", "high", "medium", "low"):
            self.assertIn(f'<div class="summary-number" id="count-{level}">0</div>', html)
        self.assertIn("No findings were included in this report.", html)

    def test_description_block_is_conditional(self) -> None:
        self.assertNotIn("Executive Summary", render_report_html("T", []))
        self.assertIn("Executive Summary", render_report_html("T", [], description="Scope notes"))

    def test_findings_are_listed_and_counted(self) -> None:
        html = render_report_html(
            "Q1", [finding("SQLi in login", "critical", cvss_score="9.8"), finding("Verbose banner", "low")]
        )
        self.assertIn("SQLi in login", html)
        self.assertIn("9.8", html)
        self.assertIn("2026-03-01", html)
        self.assertIn('id="count-critical">1<', html)
        self.assertIn('id="count-low">1<', html)

    def test_user_content_is_escaped(self) -> None:
        html = render_report_html("<script>alert(1)</script>", [finding("<img src=x onerror=y>", "high")])
        self.assertNotIn("<script>alert(1)</script>", html)
        self.assertIn("&lt;script&gt;", html)
        self.assertNotIn("<img src=x", html)


class TestGenerateReport(unittest.TestCase):
    def test_html_requested_skips_browser(self) -> None:
        with patch("app.services.report_generator.render_pdf", new=AsyncMock()) as render_pdf:
            report = asyncio.run(generate_report("T", [], fake_settings(), fmt="html"))
        render_pdf.assert_not_called()
        self.assertEqual(report.format, "html")
        self.assertTrue(report.filename.endswith(".html"))

    def test_pdf_success(self) -> None:
        with patch(
            "app.services.report_generator.render_pdf",
            new=AsyncMock(return_value=b"%PDF-1.7 fake"),
        ):
            report = asyncio.run(generate_report("Q1 Report", [], fake_settings(), fmt="pdf"))
        self.assertEqual(report.format, "pdf")
        self.assertEqual(report.media_type, "application/pdf")
        self.assertEqual(report.content, b"%PDF-1.7 fake")
        self.assertTrue(report.filename.startswith("q1_report_"))

    def test_missing_browser_falls_back_to_html(self) -> None:
        failing = AsyncMock(side_effect=OSError("Executable doesn't exist at /ms-playwright/chromium"))
        with patch("app.services.report_generator.render_pdf", new=failing):
            with self.assertLogs("app.services.report_generator", level="WARNING"):
                report = asyncio.run(generate_report("Empty", [], fake_settings(), fmt="pdf"))
        self.assertEqual(report.format, "html")
        self.assertTrue(report.content.startswith(b"<!DOCTYPE html>"))
        self.assertIn(b'id="count-critical">0<', report.content)

    def test_render_timeout_falls_back_to_html(self) -> None:
        with patch(
            "app.services.report_generator.render_pdf",
            new=AsyncMock(side_effect=TimeoutError()),
        ):
            report = asyncio.run(generate_report("Slow", [], fake_settings(), fmt="pdf"))
        self.assertEqual(report.format, "html")

    def test_unexpected_renderer_error_falls_back_to_html(self) -> None:
        with patch(
            "app.services.report_generator.render_pdf",
            new=AsyncMock(side_effect=ValueError("unexpected page.pdf argument")),
        ):
            with self.assertLogs("app.services.report_generator", level="WARNING"):
                report = asyncio.run(generate_report("Odd", [], fake_settings(), fmt="pdf"))
        self.assertEqual(report.format, "html")
        self.assertTrue(report.filename.endswith(".html"))


class TestFiles(unittest.TestCase):
    def test_report_filename_is_sanitized(self) -> None:
        name = report_filename("Q1 / ../Web App!", "pdf", now=1_700_000_000.5)
        self.assertRegex(name, r"^q1______web_app__1700000000500_[0-9a-f]{8}\.pdf$")

    def test_same_title_same_millisecond_gets_distinct_names(self) -> None:
        names = {report_filename("Weekly", "html", now=1_700_000_000.0) for _ in range(20)}
        self.assertEqual(len(names), 20)

    def test_save_report_writes_bytes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            report = GeneratedReport(b"<html></html>", "r_1.html", "html", "text/html")
            path = save_report(report, str(Path(tmp) / "reports"))
            self.assertEqual(path.read_bytes(), b"<html></html>")


if __name__ == "__main__":
    unittest.main()
