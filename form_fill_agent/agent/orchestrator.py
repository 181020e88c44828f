import asyncio
import logging
import warnings
from dataclasses import dataclass, field
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError

from .browser import BrowserSession
from .errors import AcquisitionError, FormFillError, ValueMappingError, ZeroFieldsWarning
from .fields import FieldDescriptor, ValueAssignment
from .form_filler import FillReport, apply_field_values
from .form_scanner import DomContext, scan_form_fields
from .llm_client import create_structured_llm_client
from .value_mapper import JsonGenerator, request_value_assignment

ZERO_FIELDS_HINT = (
    "No fillable fields were found. The form may live inside an iframe, need a sign-in, "
    "or render after the settle delay; try a larger SETTLE_DELAY_MS or HEADLESS=false to inspect the page."
)

_run_lock: asyncio.Lock | None = None
_run_lock_loop: asyncio.AbstractEventLoop | None = None


def _get_run_lock() -> asyncio.Lock:
    """Ensure only one form run drives a browser per event loop.

    The lock is recreated if a new event loop is used (e.g., when calling
    from the CLI via asyncio.run).
    """

    global _run_lock, _run_lock_loop

    loop = asyncio.get_running_loop()
    if _run_lock is None or _run_lock_loop is not loop:
        _run_lock = asyncio.Lock()
        _run_lock_loop = loop

    return _run_lock


@dataclass
class FormFillRun:
    url: str
    status: str
    fields: List[FieldDescriptor] = field(default_factory=list)
    values: ValueAssignment = field(default_factory=dict)
    report: Optional[FillReport] = None

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "status": self.status,
            "fields": [descriptor.to_dict() for descriptor in self.fields],
            "values": dict(self.values),
            "report": self.report.to_dict() if self.report else None,
        }


async def discover_fields(page: DomContext) -> List[FieldDescriptor]:
    try:
        return await scan_form_fields(page)
    except PlaywrightError as exc:
        raise AcquisitionError(f"Could not scan the document: {exc}") from exc


async def _open_page(session: BrowserSession, url: str) -> DomContext:
    print(f"[orchestrator] Navigating to {url}")
    page = await session.goto(url)
    if page is None:
        raise AcquisitionError("Browser session has no page")
    return page


async def discover_form_fields(session: BrowserSession, url: str) -> List[FieldDescriptor]:
    """Navigate and run discovery only."""

    async with _get_run_lock():
        page = await _open_page(session, url)
        return await discover_fields(page)


async def run_form_fill(
    session: BrowserSession,
    url: str,
    context: Optional[str] = None,
    llm_client: Optional[JsonGenerator] = None,
) -> FormFillRun:
    """
    Discover fields at url, ask the value-mapping provider for values, then fill.

    The session is left open so the operator can review the page; closing it is
    the caller's job. Fatal failures propagate as FormFillError subclasses;
    per-field failures end up in the returned report.
    """

    async with _get_run_lock():
        page = await _open_page(session, url)

        fields = await discover_fields(page)
        print(f"[orchestrator] Found {len(fields)} fields: {[f.label for f in fields]}")
        if not fields:
            logging.warning("form_run_no_fields url=%s", url)
            warnings.warn(ZERO_FIELDS_HINT, ZeroFieldsWarning, stacklevel=2)
            return FormFillRun(url=url, status="no_fields")

        try:
            if llm_client is None:
                llm_client = create_structured_llm_client()
            values = await request_value_assignment(llm_client, fields, context)
        except FormFillError:
            raise
        except Exception as exc:
            logging.error("value_mapping_failed url=%s reason=%s", url, exc)
            raise ValueMappingError(f"Value-mapping provider failed: {exc}") from exc

        report = await apply_field_values(page, fields, values)
        print(
            f"[orchestrator] Filled={report.filled} skipped={report.skipped} failed={report.failed}. "
            "Review the page and submit manually."
        )
        return FormFillRun(url=url, status="filled", fields=fields, values=values, report=report)
