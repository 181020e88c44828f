from __future__ import annotations

from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from pydantic import BaseModel

from ..agent.browser import BrowserSession
from ..agent.errors import AcquisitionError, ExtractionError, ValueMappingError
from ..agent.orchestrator import discover_form_fields, run_form_fill
from ..agent.value_mapper import JsonGenerator

app = FastAPI(title="form-fill-agent")


class DiscoverRequest(BaseModel):
    url: str


class FillRequest(BaseModel):
    url: str
    context: str | None = None


class FieldModel(BaseModel):
    kind: str
    label: str
    identifier: str
    required: bool
    options: List[str]


class DiscoverResponse(BaseModel):
    url: str
    fields: List[FieldModel]


class FieldOutcomeModel(BaseModel):
    identifier: str
    label: str
    kind: str
    status: str
    detail: str


class FillReportModel(BaseModel):
    filled: int
    skipped: int
    failed: int
    outcomes: List[FieldOutcomeModel]


class FillResponse(BaseModel):
    url: str
    status: str
    fields: List[FieldModel]
    values: dict
    report: FillReportModel | None


def get_browser_factory() -> Callable[[], BrowserSession]:
    # The API always runs headless and closes the browser when the request ends.
    return lambda: BrowserSession(headless=True)


def get_llm_client() -> Optional[JsonGenerator]:
    return None


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/forms/discover", response_model=DiscoverResponse)
async def discover(
    payload: DiscoverRequest,
    browser_factory: Callable[[], BrowserSession] = Depends(get_browser_factory),
):
    try:
        async with browser_factory() as browser:
            fields = await discover_form_fields(browser, payload.url)
    except AcquisitionError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return DiscoverResponse(url=payload.url, fields=[FieldModel(**field.to_dict()) for field in fields])


@app.post("/forms/fill", response_model=FillResponse)
async def fill(
    payload: FillRequest,
    browser_factory: Callable[[], BrowserSession] = Depends(get_browser_factory),
    llm_client: Optional[JsonGenerator] = Depends(get_llm_client),
):
    """
    Discover, map and fill in one request. Nothing is submitted; the report
    says what happened to each field.
    """
    try:
        async with browser_factory() as browser:
            run = await run_form_fill(browser, payload.url, context=payload.context, llm_client=llm_client)
    except (AcquisitionError, ValueMappingError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ExtractionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return FillResponse(**run.to_dict())
