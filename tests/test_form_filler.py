import asyncio
import logging

from form_fill_agent.agent.fields import FieldDescriptor
from form_fill_agent.agent.form_filler import apply_field_values
from form_fill_agent.agent.form_scanner import scan_form_fields

from fakes import FakeFormPage, control, favorite_color_page


def _fill(page, values, fields=None):
    if fields is None:
        fields = asyncio.run(scan_form_fields(page))
    return asyncio.run(apply_field_values(page, fields, values, field_delay_ms=0))


def test_favorite_color_activates_only_the_chosen_radio():
    page = favorite_color_page()

    report = _fill(page, {"Favorite color": "Green"})

    assert page.checked_labels() == ["Green"]
    assert [e for e in page.events if e[0] == "click"] == [("click", 1)]
    assert [o.status for o in report.outcomes] == ["filled"]


def test_checkbox_application_is_idempotent():
    page = FakeFormPage([control("checkbox", "I agree to the terms")])
    fields = asyncio.run(scan_form_fields(page))

    first = _fill(page, {"I agree to the terms": True}, fields)
    second = _fill(page, {"I agree to the terms": True}, fields)

    assert page.controls[0]["checked"] is True
    assert first.outcomes[0].status == "filled"
    assert second.outcomes[0].status == "unchanged"
    assert [e for e in page.events if e[0] == "click"] == [("click", 0)]


def test_checkbox_is_unchecked_when_false_is_assigned():
    page = FakeFormPage([control("checkbox", "Newsletter", checked=True)])

    _fill(page, {"Newsletter": False})

    assert page.controls[0]["checked"] is False


def test_absent_value_is_skipped_without_touching_the_document():
    page = FakeFormPage([control("text", "Name"), control("checkbox", "Agree")])
    fields = asyncio.run(scan_form_fields(page))
    scans_before = page.scan_count

    report = _fill(page, {}, fields)

    assert page.scan_count == scans_before
    assert page.mutations == []
    assert [o.status for o in report.outcomes] == ["skipped", "skipped"]
    assert report.failed == 0


def test_text_fill_sets_value_and_emits_input_then_change():
    page = FakeFormPage([control("text", "Full Name"), control("textarea", "Cover letter")])

    report = _fill(page, {"Full Name": "Ada Lovelace", "Cover letter": ["Hello", "there"]})

    assert page.controls[0]["value"] == "Ada Lovelace"
    assert page.controls[1]["value"] == "Hello, there"
    assert page.events == [("input", 0), ("change", 0), ("input", 1), ("change", 1)]
    assert report.filled == 2


def test_text_match_prefers_exact_label_over_earlier_partial_match():
    page = FakeFormPage([control("text", "Last Name"), control("text", "Name")])
    fields = [FieldDescriptor(kind="text", label="Name", identifier="free_text_1")]

    _fill(page, {"Name": "Grace"}, fields)

    assert page.controls[0]["value"] == ""
    assert page.controls[1]["value"] == "Grace"


def test_text_match_accepts_partial_labels_in_document_order():
    page = FakeFormPage([control("email", "Email"), control("text", "Email backup")])
    fields = [FieldDescriptor(kind="text", label="Email address", identifier="free_text_0")]

    _fill(page, {"Email address": "a@example.com"}, fields)

    assert page.controls[0]["value"] == "a@example.com"
    assert page.controls[1]["value"] == ""


def test_select_uses_rendered_option_text():
    page = FakeFormPage(
        [control("select", "Country", options=["Choose", "Canada", "Mexico"])],
    )

    report = _fill(page, {"Country": "Mexico"})

    assert page.controls[0]["value"] == "Mexico"
    assert page.events == [("change", 0)]
    assert report.outcomes[0].status == "filled"


def test_values_that_do_not_fit_the_kind_are_skipped():
    page = FakeFormPage(
        [
            control("radio", "Yes", container=0, name="q"),
            control("radio", "No", container=0, name="q"),
            control("checkbox", "Remember me"),
            control("select", "Size", options=["S", "M"]),
        ],
        headings=["Ready?"],
    )

    report = _fill(page, {"Ready?": "Maybe", "Remember me": "yes", "Size": "XL"})

    assert [o.status for o in report.outcomes] == ["skipped", "skipped", "skipped"]
    assert page.mutations == []
    assert page.scan_count == 1


def test_one_failing_field_does_not_stop_the_rest(caplog):
    caplog.set_level(logging.INFO)
    page = FakeFormPage([control("text", "Name"), control("checkbox", "Agree")])
    fields = [
        FieldDescriptor(kind="text", label="Salary expectation", identifier="free_text_9"),
        FieldDescriptor(kind="checkbox", label="Agree", identifier="free_checkbox_0"),
    ]

    report = _fill(page, {"Salary expectation": "100", "Agree": True}, fields)

    assert [o.status for o in report.outcomes] == ["failed", "filled"]
    assert "no matching control" in report.outcomes[0].detail
    assert page.controls[1]["checked"] is True
    assert any("field_fill_failed" in record.message for record in caplog.records)


class RelabelingPage(FakeFormPage):
    """Changes a label between the scan and the mutation, like a re-render would."""

    async def evaluate(self, script, arg=None):
        result = await super().evaluate(script, arg)
        if "form_fill:scan_controls" in script:
            self.controls[0]["label"] = "Name (edited)"
        return result


def test_control_that_changed_after_the_scan_is_reported_stale():
    page = RelabelingPage([control("text", "Name")])
    fields = [FieldDescriptor(kind="text", label="Name", identifier="free_text_0")]

    report = _fill(page, {"Name": "Ada"}, fields)

    assert report.outcomes[0].status == "failed"
    assert "label_changed" in report.outcomes[0].detail
    assert page.controls[0]["value"] == ""


class ExplodingPage(FakeFormPage):
    async def evaluate(self, script, arg=None):
        if "form_fill:apply_control" in script and arg["index"] == 0:
            raise RuntimeError("Execution context was destroyed")
        return await super().evaluate(script, arg)


def test_exceptions_during_mutation_are_contained():
    page = ExplodingPage([control("text", "Name"), control("text", "City")])

    report = _fill(page, {"Name": "Ada", "City": "London"})

    assert [o.status for o in report.outcomes] == ["failed", "filled"]
    assert page.controls[1]["value"] == "London"


def test_each_application_rescans_and_pauses_between_fields():
    page = FakeFormPage([control("text", "A"), control("text", "B"), control("text", "C")])
    fields = asyncio.run(scan_form_fields(page))

    asyncio.run(apply_field_values(page, fields, {"A": "1", "B": "2", "C": "3"}, field_delay_ms=250))

    assert page.scan_count == 1 + 3
    assert page.waits == [250, 250]


def test_colliding_labels_receive_the_same_value():
    page = FakeFormPage([control("text", "Unknown field"), control("text", "Unknown field")])

    report = _fill(page, {"Unknown field": "x"})

    # Both descriptors resolve to the first control in document order.
    assert page.controls[0]["value"] == "x"
    assert page.controls[1]["value"] == ""
    assert [o.status for o in report.outcomes] == ["filled", "filled"]
