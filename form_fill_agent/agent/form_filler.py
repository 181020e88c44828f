from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Literal, Optional, Sequence, Tuple

from ..config import settings
from .errors import FieldApplicationError
from .fields import TEXT_KINDS, AssignedValue, FieldDescriptor, ValueAssignment
from .form_scanner import DomContext, FieldBinding, PageScan, ScannedControl, build_field_bindings, scan_page
from .label_match import best_match
from .page_scripts import APPLY_CONTROL_JS

FillStatus = Literal["filled", "unchanged", "skipped", "failed"]


@dataclass
class FieldOutcome:
    identifier: str
    label: str
    kind: str
    status: FillStatus
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "label": self.label,
            "kind": self.kind,
            "status": self.status,
            "detail": self.detail,
        }


@dataclass
class FillReport:
    outcomes: List[FieldOutcome] = field(default_factory=list)

    def record(self, descriptor: FieldDescriptor, status: FillStatus, detail: str = "") -> FieldOutcome:
        outcome = FieldOutcome(
            identifier=descriptor.identifier,
            label=descriptor.label,
            kind=descriptor.kind,
            status=status,
            detail=detail,
        )
        self.outcomes.append(outcome)
        return outcome

    def count(self, status: FillStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def filled(self) -> int:
        return self.count("filled") + self.count("unchanged")

    @property
    def skipped(self) -> int:
        return self.count("skipped")

    @property
    def failed(self) -> int:
        return self.count("failed")

    def to_dict(self) -> dict:
        return {
            "filled": self.filled,
            "skipped": self.skipped,
            "failed": self.failed,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class _SkipField(Exception):
    """The assigned value does not fit the field kind; nothing is touched."""


def _coerce_text(value: AssignedValue) -> str:
    if isinstance(value, bool):
        raise _SkipField("text field needs a string value")
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def _coerce_option(descriptor: FieldDescriptor, value: AssignedValue) -> str:
    if isinstance(value, (bool, list)):
        raise _SkipField(f"{descriptor.kind} field needs one option")
    text = str(value)
    if text not in descriptor.options:
        raise _SkipField(f"{text!r} is not one of the options")
    return text


def _plan_action(descriptor: FieldDescriptor, value: AssignedValue) -> Tuple[str, Any]:
    kind = descriptor.kind
    if kind in TEXT_KINDS:
        return "fill", _coerce_text(value)
    if kind == "radio":
        return "check", _coerce_option(descriptor, value)
    if kind == "checkbox":
        if not isinstance(value, bool):
            raise _SkipField("checkbox field needs a boolean value")
        return "check", value
    if kind == "select":
        return "select", _coerce_option(descriptor, value)
    raise _SkipField(f"unsupported field kind {kind}")


def _binding_labels(scan: PageScan, binding: FieldBinding) -> List[str]:
    labels = [binding.descriptor.label]
    if binding.descriptor.kind != "radio":
        labels.extend(scan.control(index).label for index in binding.control_indices)
    return labels


def resolve_binding(scan: PageScan, descriptor: FieldDescriptor) -> Optional[FieldBinding]:
    """Find the live binding for a descriptor by label, using a scan taken just now."""
    if descriptor.kind in TEXT_KINDS:
        candidates = [b for b in build_field_bindings(scan) if b.descriptor.kind in TEXT_KINDS]
    else:
        candidates = [b for b in build_field_bindings(scan) if b.descriptor.kind == descriptor.kind]
    return best_match(candidates, descriptor.label, lambda binding: _binding_labels(scan, binding))


def _pick_radio(radios: Sequence[ScannedControl], option: str) -> Optional[ScannedControl]:
    for radio in radios:
        if radio.choice_text == option or radio.value == option:
            return radio
    return best_match(radios, option, lambda radio: (radio.choice_text,))


async def apply_field_value(context: DomContext, descriptor: FieldDescriptor, value: AssignedValue) -> FillStatus:
    """
    Re-resolve one descriptor against the live document and apply its value.

    Raises FieldApplicationError when no control matches, when the value does
    not fit the field, or when the control changed between the scan and the
    mutation.
    """
    try:
        action, payload = _plan_action(descriptor, value)
    except _SkipField as exc:
        raise FieldApplicationError(descriptor.label, str(exc)) from exc

    scan = await scan_page(context)
    binding = resolve_binding(scan, descriptor)
    if binding is None:
        raise FieldApplicationError(descriptor.label, "no matching control")

    if descriptor.kind == "radio":
        radios = [scan.control(index) for index in binding.control_indices]
        control = _pick_radio(radios, payload)
        if control is None:
            raise FieldApplicationError(descriptor.label, f"no radio option matching {payload!r}")
        payload = True
    else:
        control = scan.control(binding.control_indices[0])

    result = await context.evaluate(
        APPLY_CONTROL_JS,
        {"index": control.index, "expected_label": control.label, "action": action, "value": payload},
    )
    if not result or not result.get("ok"):
        reason = (result or {}).get("reason") or "no result from page"
        raise FieldApplicationError(descriptor.label, reason)
    return "filled" if result.get("changed") else "unchanged"


async def apply_field_values(
    context: DomContext,
    fields: Sequence[FieldDescriptor],
    values: ValueAssignment,
    field_delay_ms: int | None = None,
) -> FillReport:
    """
    Apply a label-keyed value mapping to the document, one field at a time.

    Fields without an assigned value are skipped without touching the page.
    A failure on one field is logged and recorded; the remaining fields are
    still attempted.
    """
    delay_ms = settings.field_delay_ms if field_delay_ms is None else field_delay_ms
    report = FillReport()
    attempted = 0

    for descriptor in fields:
        value = values.get(descriptor.label)
        if value is None:
            logging.debug("field_skipped label=%r reason=no_value", descriptor.label)
            report.record(descriptor, "skipped", "no value assigned")
            continue

        try:
            _plan_action(descriptor, value)
        except _SkipField as exc:
            logging.info("field_skipped label=%r kind=%s reason=%s", descriptor.label, descriptor.kind, exc)
            report.record(descriptor, "skipped", str(exc))
            continue

        if attempted and delay_ms > 0:
            await context.wait_for_timeout(delay_ms)
        attempted += 1

        try:
            status = await apply_field_value(context, descriptor, value)
        except Exception as exc:  # noqa: BLE001
            logging.warning("field_fill_failed label=%r kind=%s reason=%s", descriptor.label, descriptor.kind, exc)
            report.record(descriptor, "failed", str(exc))
        else:
            logging.info("field_%s label=%r kind=%s", status, descriptor.label, descriptor.kind)
            report.record(descriptor, status)

    logging.info(
        "form_fill_finished filled=%d skipped=%d failed=%d",
        report.filled,
        report.skipped,
        report.failed,
    )
    return report
