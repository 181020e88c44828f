import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from form_fill_agent.agent.errors import AcquisitionError, ExtractionError, ValueMappingError, ZeroFieldsWarning
from form_fill_agent.agent.orchestrator import discover_form_fields, run_form_fill

from fakes import DummyLLM, FakeFormPage, FakeSession, control, favorite_color_page


@pytest.fixture(autouse=True)
def no_field_delay(monkeypatch):
    from form_fill_agent.config import settings

    monkeypatch.setattr(settings, "field_delay_ms", 0)


def test_run_discovers_maps_and_fills():
    page = favorite_color_page()
    session = FakeSession(page)
    llm = DummyLLM({"Favorite color": "Green"})

    run = asyncio.run(run_form_fill(session, "https://forms.example.com/f/1", "survey", llm_client=llm))

    assert session.visited == ["https://forms.example.com/f/1"]
    assert run.status == "filled"
    assert [f.label for f in run.fields] == ["Favorite color"]
    assert run.values == {"Favorite color": "Green"}
    assert run.report.filled == 1
    assert page.checked_labels() == ["Green"]
    assert session.closed is False


def test_zero_fields_stops_before_requesting_values():
    session = FakeSession(FakeFormPage([]))
    llm = DummyLLM({"anything": "x"})

    with pytest.warns(ZeroFieldsWarning):
        run = asyncio.run(run_form_fill(session, "https://example.com/empty", llm_client=llm))

    assert run.status == "no_fields"
    assert run.fields == []
    assert run.report is None
    assert llm.prompts == []


def test_extraction_error_aborts_before_any_fill():
    page = FakeFormPage([control("text", "Name")])
    llm = DummyLLM(should_raise=ExtractionError("no JSON"))

    with pytest.raises(ExtractionError):
        asyncio.run(run_form_fill(FakeSession(page), "https://example.com/form", llm_client=llm))

    assert page.mutations == []


def test_provider_transport_error_becomes_value_mapping_error():
    page = FakeFormPage([control("text", "Name")])
    session = FakeSession(page)
    llm = DummyLLM(should_raise=ConnectionError("provider unreachable"))

    with pytest.raises(ValueMappingError) as excinfo:
        asyncio.run(run_form_fill(session, "https://example.com/form", llm_client=llm))

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert page.mutations == []
    assert session.closed is False


def test_missing_provider_configuration_becomes_value_mapping_error(monkeypatch):
    from form_fill_agent.config import settings

    monkeypatch.setattr(settings, "llm_provider", "openai")
    monkeypatch.setattr(settings, "openai_api_key", None)
    page = FakeFormPage([control("text", "Name")])

    with pytest.raises(ValueMappingError, match="OPENAI_API_KEY"):
        asyncio.run(run_form_fill(FakeSession(page), "https://example.com/form"))

    assert page.mutations == []


class BrokenPage(FakeFormPage):
    async def evaluate(self, script, arg=None):
        raise PlaywrightError("Target page, context or browser has been closed")


def test_scan_failure_surfaces_as_acquisition_error():
    with pytest.raises(AcquisitionError):
        asyncio.run(run_form_fill(FakeSession(BrokenPage([])), "https://example.com/form", llm_client=DummyLLM({})))


def test_discover_form_fields_only_scans():
    page = FakeFormPage([control("text", "Name"), control("checkbox", "Agree")])

    fields = asyncio.run(discover_form_fields(FakeSession(page), "https://example.com/form"))

    assert [(f.kind, f.label) for f in fields] == [("text", "Name"), ("checkbox", "Agree")]
    assert page.mutations == []
