"""
Report generation: render findings to HTML with Jinja2, optionally print to PDF with
headless Chromium (Playwright). PDF failures degrade to the HTML document.
"""

import asyncio
import logging
import re
import secrets
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment
from playwright.async_api import async_playwright

from app.core.config import Settings
from app.schemas.findings import SEVERITY_VALUES

logger = logging.getLogger(__name__)

FORMAT_PDF = "pdf"
FORMAT_HTML = "html"
MEDIA_TYPES = {FORMAT_PDF: "application/pdf", FORMAT_HTML: "text/html; charset=utf-8"}

# Chromium flags for running inside containers without a user namespace sandbox.
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
]

PDF_MARGIN = {"top": "20mm", "right": "15mm", "bottom": "20mm", "left": "15mm"}

REPORT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
  body { font-family: Arial, sans-serif; margin: 0; padding: 20px; color: #333; line-height: 1.6; }
  .header { border-bottom: 3px solid #10b981; padding-bottom: 20px; margin-bottom: 30px; }
  .header h1 { margin: 0; color: #1f2937; font-size: 28px; }
  .subtitle { color: #6b7280; font-size: 16px; }
  .meta-info { display: flex; justify-content: space-between; padding: 20px; background: #f9fafb; border-radius: 8px; margin-bottom: 30px; }
  .meta-info .label { font-weight: bold; color: #374151; font-size: 14px; }
  .description { background: #f3f4f6; padding: 20px; border-radius: 8px; margin-bottom: 30px; }
  .section-title { font-size: 24px; color: #1f2937; border-bottom: 2px solid #e5e7eb; padding-bottom: 10px; }
  .finding { border: 1px solid #e5e7eb; border-radius: 8px; padding: 25px; margin-bottom: 20px; page-break-inside: avoid; }
  .severity { padding: 4px 12px; border-radius: 20px; font-size: 12px; font-weight: bold; text-transform: uppercase; }
  .severity.critical { background: #fef2f2; color: #dc2626; }
  .severity.high { background: #fff7ed; color: #ea580c; }
  .severity.medium { background: #fffbeb; color: #d97706; }
  .severity.low { background: #f0fdf4; color: #16a34a; }
  .detail-label { font-weight: bold; color: #374151; font-size: 12px; text-transform: uppercase; }
  .summary-grid { display: grid; grid-template-columns: repeat(4, 1fr); gap: 20px; text-align: center; }
  .summary-number { font-size: 32px; font-weight: bold; }
  .footer { margin-top: 50px; padding-top: 20px; border-top: 1px solid #e5e7eb; text-align: center; color: #6b7280; font-size: 12px; }
</style>
</head>
<body>
<div class="header">
  <h1>{{ title }}</h1>
  <div class="subtitle">Security Assessment Report</div>
</div>
<div class="meta-info">
  <div><div class="label">Generated Date</div><div class="value">{{ generated_at | format_date }}</div></div>
  <div><div class="label">Total Findings</div><div class="value">{{ findings | length }}</div></div>
  <div><div class="label">Generated By</div><div class="value">{{ generated_by }}</div></div>
  <div><div class="label">Format</div><div class="value">{{ format | upper }}</div></div>
</div>
{% if description %}
<div class="description">
  <h3>Executive Summary</h3>
  <p>{{ description }}</p>
</div>
{% endif %}
<div class="findings-section">
  <h2 class="section-title">Security Findings</h2>
  {% for finding in findings %}
  <div class="finding">
    <h3 class="finding-title">{{ finding.title }}</h3>
    <span class="severity {{ finding.severity }}">{{ finding.severity }}</span>
    <div class="finding-description">{{ finding.description }}</div>
    <div class="detail-label">Category</div><div>{{ finding.category }}</div>
    <div class="detail-label">Status</div><div>{{ finding.status }}</div>
    {% if finding.cvss_score %}<div class="detail-label">CVSS</div><div>{{ finding.cvss_score }}</div>{% endif %}
    {% if finding.affected_url %}<div class="detail-label">Affected URL</div><div>{{ finding.affected_url }}</div>{% endif %}
    {% if finding.reported_by %}<div class="detail-label">Reported By</div><div>{{ finding.reported_by.display_name }}</div>{% endif %}
    <div class="detail-label">Discovered</div><div>{{ finding.created_at | format_date }}</div>
  </div>
  {% else %}
  <p>No findings were included in this report.</p>
  {% endfor %}
</div>
<div class="summary">
  <h2 class="section-title">Summary</h2>
  <div class="summary-grid">
    <div><div class="summary-number" id="count-critical">{{ summary.critical }}</div><div>Critical</div></div>
    <div><div class="summary-number" id="count-high">{{ summary.high }}</div><div>High</div></div>
    <div><div class="summary-number" id="count-medium">{{ summary.medium }}</div><div>Medium</div></div>
    <div><div class="summary-number" id="count-low">{{ summary.low }}</div><div>Low</div></div>
  </div>
</div>
<div class="footer">
  Generated by RedTeam Collab - Penetration Testing Platform<br>
  This report contains confidential security information and should be handled accordingly.
</div>
</body>
</html>
"""


def format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.isoformat()
    return "" if value is None else str(value)


_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_env.filters["format_date"] = format_date
_template = _env.from_string(REPORT_TEMPLATE)


@dataclass(frozen=True)
class GeneratedReport:
    content: bytes
    filename: str
    format: str
    media_type: str


def severity_summary(findings: Iterable[Any]) -> dict[str, int]:
    """Count findings per severity; every level is present, unknown severities are ignored."""
    summary = {level: 0 for level in SEVERITY_VALUES}
    for finding in findings:
        severity = str(getattr(finding, "severity", "") or "").lower()
        if severity in summary:
            summary[severity] += 1
    return summary


def render_report_html(
    title: str,
    findings: list[Any],
    *,
    description: str | None = None,
    generated_by: str = "",
    fmt: str = FORMAT_HTML,
    generated_at: datetime | None = None,
) -> str:
    return _template.render(
        title=title,
        description=description,
        findings=findings,
        summary=severity_summary(findings),
        generated_by=generated_by,
        format=fmt,
        generated_at=generated_at or datetime.now(UTC),
    )


def report_filename(title: str, extension: str, now: float | None = None) -> str:
    """Filesystem-safe name: slugged title, millisecond timestamp and a random suffix."""
    slug = re.sub(r"[^a-z0-9]", "_", title.lower()) or "report"
    millis = int((now if now is not None else time.time()) * 1000)
    return f"{slug[:100]}_{millis}_{secrets.token_hex(4)}.{extension}"


async def _print_pdf(html: str, executable_path: str | None) -> bytes:
    async with async_playwright() as p:
        browser = await p.chromium.launch(
            headless=True,
            executable_path=executable_path or None,
            args=CHROMIUM_ARGS,
        )
        try:
            page = await browser.new_page()
            await page.set_content(html, wait_until="load")
            return await page.pdf(format="A4", margin=PDF_MARGIN, print_background=True)
        finally:
            await browser.close()


async def render_pdf(html: str, settings: Settings) -> bytes:
    """Print html to PDF with headless Chromium; raises on any browser failure or timeout."""
    return await asyncio.wait_for(
        _print_pdf(html, settings.CHROMIUM_EXECUTABLE_PATH),
        timeout=settings.PDF_RENDER_TIMEOUT_SEC,
    )


async def generate_report(
    title: str,
    findings: list[Any],
    settings: Settings,
    *,
    description: str | None = None,
    generated_by: str = "",
    fmt: str = FORMAT_PDF,
) -> GeneratedReport:
    """
    Render a report in the requested format.

    When PDF is requested and rendering fails for any reason, the HTML document is
    returned instead with format "html"; the call itself does not fail.
    """
    html = render_report_html(
        title,
        findings,
        description=description,
        generated_by=generated_by,
        fmt=fmt,
    )
    if fmt == FORMAT_PDF:
        try:
            pdf = await render_pdf(html, settings)
            return GeneratedReport(
                content=pdf,
                filename=report_filename(title, FORMAT_PDF),
                format=FORMAT_PDF,
                media_type=MEDIA_TYPES[FORMAT_PDF],
            )
        except Exception as e:
            logger.warning(
                "PDF rendering failed; falling back to HTML",
                extra={"report_title": title[:200], "error": str(e)[:500]},
            )
    return GeneratedReport(
        content=html.encode("utf-8"),
        filename=report_filename(title, FORMAT_HTML),
        format=FORMAT_HTML,
        media_type=MEDIA_TYPES[FORMAT_HTML],
    )


def save_report(report: GeneratedReport, reports_dir: str) -> Path:
    """Write the report under reports_dir (created if absent) and return its path."""
    directory = Path(reports_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / report.filename
    path.write_bytes(report.content)
    return path
