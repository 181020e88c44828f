from __future__ import annotations
"""Generic form field discovery (no site-specific selectors beyond container signatures)."""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from playwright.async_api import Frame, Page

from .fields import TEXT_KINDS, UNKNOWN_LABEL, FieldDescriptor, FieldKind
from .page_scripts import SCAN_CONTROLS_JS, TEXT_INPUT_TYPES

DomContext = Union[Page, Frame]


@dataclass
class ScannedControl:
    index: int
    tag: str
    input_type: str
    name: str = ""
    value: str = ""
    checked: bool = False
    required: bool = False
    label: str = UNKNOWN_LABEL
    group_label: str = UNKNOWN_LABEL
    options: List[str] = field(default_factory=list)
    container: Optional[int] = None

    @property
    def kind(self) -> Optional[FieldKind]:
        if self.input_type in {"textarea", "select", "radio", "checkbox"}:
            return self.input_type  # type: ignore[return-value]
        if self.input_type in TEXT_INPUT_TYPES:
            return "text"
        return None

    @property
    def choice_text(self) -> str:
        # Unlabeled radios fall back to their value attribute.
        if self.label != UNKNOWN_LABEL:
            return self.label
        return self.value or self.label

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "ScannedControl":
        container = raw.get("container")
        return cls(
            index=int(raw["index"]),
            tag=str(raw.get("tag") or ""),
            input_type=str(raw.get("type") or "text").lower(),
            name=str(raw.get("name") or ""),
            value=str(raw.get("value") or ""),
            checked=bool(raw.get("checked")),
            required=bool(raw.get("required")),
            label=str(raw.get("label") or UNKNOWN_LABEL),
            group_label=str(raw.get("group_label") or raw.get("label") or UNKNOWN_LABEL),
            options=[str(option) for option in raw.get("options") or []],
            container=int(container) if container is not None else None,
        )


@dataclass
class ScannedContainer:
    index: int
    heading: Optional[str] = None


@dataclass
class PageScan:
    controls: List[ScannedControl] = field(default_factory=list)
    containers: List[ScannedContainer] = field(default_factory=list)

    @property
    def flat_mode(self) -> bool:
        return all(control.container is None for control in self.controls)

    def control(self, index: int) -> ScannedControl:
        for control in self.controls:
            if control.index == index:
                return control
        raise KeyError(index)

    @classmethod
    def from_raw(cls, raw: Optional[Dict[str, Any]]) -> "PageScan":
        raw = raw or {}
        controls = [ScannedControl.from_raw(item) for item in raw.get("controls") or []]
        containers = [
            ScannedContainer(index=int(item["index"]), heading=(item.get("heading") or None))
            for item in raw.get("containers") or []
        ]
        return cls(controls=controls, containers=containers)


@dataclass
class FieldBinding:
    """A descriptor plus the scan indices it was built from. Valid for one scan only."""

    descriptor: FieldDescriptor
    control_indices: Tuple[int, ...]


def _composite_label(container_label: str, control_label: str) -> str:
    if control_label == container_label:
        return container_label
    return f"{container_label} - {control_label}"


class _IdentifierCounter:
    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self.counts: Dict[str, int] = defaultdict(int)

    def next(self, kind: str) -> str:
        identifier = f"{self.prefix}_{kind}_{self.counts[kind]}"
        self.counts[kind] += 1
        return identifier


def _bind_container(container: ScannedContainer, members: List[ScannedControl]) -> List[FieldBinding]:
    members = [control for control in members if control.kind]
    if not members:
        return []

    container_label = container.heading or members[0].label
    ids = _IdentifierCounter(f"q{container.index}")
    totals = Counter(control.kind for control in members)
    text_total = sum(totals[kind] for kind in TEXT_KINDS)
    radios = [control for control in members if control.kind == "radio"]

    bindings: List[FieldBinding] = []
    for control in members:
        kind = control.kind
        if kind == "radio":
            if control is radios[0]:
                descriptor = FieldDescriptor(
                    kind="radio",
                    label=container_label,
                    identifier=ids.next("radio"),
                    required=any(radio.required for radio in radios),
                    options=tuple(radio.choice_text for radio in radios),
                )
                bindings.append(FieldBinding(descriptor, tuple(radio.index for radio in radios)))
            continue

        if kind == "checkbox":
            label = _composite_label(container_label, control.label)
        elif kind in TEXT_KINDS:
            label = container_label if text_total == 1 else _composite_label(container_label, control.label)
        else:
            label = container_label if totals["select"] == 1 else _composite_label(container_label, control.label)

        descriptor = FieldDescriptor(
            kind=kind,
            label=label,
            identifier=ids.next(kind),
            required=control.required,
            options=tuple(control.options) if kind == "select" else (),
        )
        bindings.append(FieldBinding(descriptor, (control.index,)))
    return bindings


def _bind_residual(controls: List[ScannedControl]) -> List[FieldBinding]:
    ids = _IdentifierCounter("free")

    radio_groups: Dict[str, List[ScannedControl]] = {}
    for control in controls:
        if control.kind == "radio":
            radio_groups.setdefault(control.name or f"#{control.index}", []).append(control)

    bindings: List[FieldBinding] = []
    for control in controls:
        kind = control.kind
        if kind is None:
            continue
        if kind == "radio":
            group = radio_groups[control.name or f"#{control.index}"]
            if control is not group[0]:
                continue
            descriptor = FieldDescriptor(
                kind="radio",
                label=control.group_label,
                identifier=ids.next("radio"),
                required=any(radio.required for radio in group),
                options=tuple(radio.choice_text for radio in group),
            )
            bindings.append(FieldBinding(descriptor, tuple(radio.index for radio in group)))
            continue

        descriptor = FieldDescriptor(
            kind=kind,
            label=control.label,
            identifier=ids.next(kind),
            required=control.required,
            options=tuple(control.options) if kind == "select" else (),
        )
        bindings.append(FieldBinding(descriptor, (control.index,)))
    return bindings


def build_field_bindings(scan: PageScan) -> List[FieldBinding]:
    """
    Turn one page scan into ordered field bindings.

    Container pass first: every control with a question container is claimed by
    it and described under the container label. The residual pass then covers
    the controls no container claimed, labelling each on its own; in flat mode
    that is every control on the page. A control is claimed by exactly one pass.
    """
    members_by_container: Dict[int, List[ScannedControl]] = defaultdict(list)
    for control in scan.controls:
        if control.container is not None:
            members_by_container[control.container].append(control)

    bindings: List[FieldBinding] = []
    claimed: Set[int] = set()
    for container in sorted(scan.containers, key=lambda item: item.index):
        container_bindings = _bind_container(container, members_by_container.get(container.index, []))
        for binding in container_bindings:
            claimed.update(binding.control_indices)
        bindings.extend(container_bindings)

    residual = [control for control in scan.controls if control.index not in claimed]
    bindings.extend(_bind_residual(residual))
    return bindings


async def scan_page(context: DomContext) -> PageScan:
    raw = await context.evaluate(SCAN_CONTROLS_JS)
    scan = PageScan.from_raw(raw)
    logging.debug(
        "form_scan controls=%d containers=%d flat_mode=%s",
        len(scan.controls),
        len(scan.containers),
        scan.flat_mode,
    )
    return scan


async def scan_form_fields(context: DomContext) -> List[FieldDescriptor]:
    """Discover the fillable fields of the current document state, in order."""
    scan = await scan_page(context)
    bindings = build_field_bindings(scan)
    logging.info("form_fields_discovered count=%d flat_mode=%s", len(bindings), scan.flat_mode)
    for binding in bindings:
        logging.debug(
            "form_field id=%s kind=%s label=%r controls=%s",
            binding.descriptor.identifier,
            binding.descriptor.kind,
            binding.descriptor.label,
            list(binding.control_indices),
        )
    return [binding.descriptor for binding in bindings]
