"""JavaScript evaluated inside the page.

The label helpers are embedded verbatim in both the scan script and the apply
script, so a control resolves to the same label during discovery and during
the fill pass.
"""

from __future__ import annotations

import json

from .fields import UNKNOWN_LABEL

TEXT_INPUT_TYPES = ["text", "email", "tel", "url", "number", "search"]

CONTROL_SELECTOR = ", ".join(
    ["input:not([type])"]
    + [f'input[type="{input_type}"]' for input_type in TEXT_INPUT_TYPES]
    + ["textarea", 'input[type="radio"]', 'input[type="checkbox"]', "select"]
)

# Question containers. The last two are Google Forms question wrappers.
CONTAINER_SELECTOR = ", ".join(
    [
        '[role="listitem"]',
        '[role="group"]',
        '[role="radiogroup"]',
        "fieldset",
        ".form-group",
        ".question-group",
        ".freebirdFormviewerViewNumberedItemContainer",
        ".Qr7Oae",
    ]
)

GROUP_SELECTOR = '[role="group"], [role="radiogroup"], fieldset, .form-group, .question-group'

HEADING_SELECTOR = 'h1, h2, h3, h4, h5, h6, legend, [role="heading"], .question-title'


_LABEL_HELPERS_TEMPLATE = """
    const UNKNOWN_LABEL = __UNKNOWN_LABEL__;
    const CONTROL_SELECTOR = __CONTROL_SELECTOR__;
    const CONTAINER_SELECTOR = __CONTAINER_SELECTOR__;
    const GROUP_SELECTOR = __GROUP_SELECTOR__;
    const HEADING_SELECTOR = __HEADING_SELECTOR__;
    const TEXT_INPUT_TYPES = __TEXT_INPUT_TYPES__;

    function controlType(el) {
        const tag = el.tagName.toLowerCase();
        if (tag === "textarea" || tag === "select") {
            return tag;
        }
        return (el.getAttribute("type") || "text").toLowerCase();
    }

    function isTextControl(el) {
        const kind = controlType(el);
        return kind === "textarea" || TEXT_INPUT_TYPES.includes(kind);
    }

    function elementText(node) {
        if (!node) {
            return "";
        }
        const copy = node.cloneNode(true);
        copy.querySelectorAll("input, select, textarea, option, script, style").forEach((child) => child.remove());
        return (copy.textContent || "").trim();
    }

    function inferLabel(el) {
        const id = el.getAttribute("id");
        if (id) {
            const explicit = Array.from(document.getElementsByTagName("label")).find((label) => label.htmlFor === id);
            const text = elementText(explicit);
            if (text) {
                return text;
            }
        }

        const wrapping = el.closest("label");
        if (wrapping) {
            const text = elementText(wrapping);
            if (text) {
                return text;
            }
        }

        let sibling = el.previousElementSibling;
        while (sibling) {
            if (sibling.tagName === "LABEL" || sibling.classList.contains("question")) {
                const text = elementText(sibling);
                if (text) {
                    return text;
                }
                break;
            }
            sibling = sibling.previousElementSibling;
        }

        const ariaLabel = (el.getAttribute("aria-label") || "").trim();
        if (ariaLabel) {
            return ariaLabel;
        }

        if (isTextControl(el)) {
            const placeholder = (el.getAttribute("placeholder") || "").trim();
            if (placeholder) {
                return placeholder;
            }
        }

        return UNKNOWN_LABEL;
    }

    function headingText(container) {
        return elementText(container.querySelector(HEADING_SELECTOR));
    }

    function inferGroupLabel(el) {
        const group = el.closest(GROUP_SELECTOR);
        if (group) {
            const text = headingText(group);
            if (text) {
                return text;
            }
        }
        return inferLabel(el);
    }

    function labelledByText(container) {
        const ids = (container.getAttribute("aria-labelledby") || "").split(/\\s+/).filter(Boolean);
        for (const id of ids) {
            const text = elementText(document.getElementById(id));
            if (text) {
                return text;
            }
        }
        return "";
    }

    // A container without its own heading borrows the one of the nearest
    // enclosing container, e.g. a radiogroup nested in a titled listitem.
    function containerHeading(container) {
        let node = container;
        while (node) {
            const text = labelledByText(node) || headingText(node);
            if (text) {
                return text;
            }
            node = node.parentElement ? node.parentElement.closest(CONTAINER_SELECTOR) : null;
        }
        return null;
    }
"""

LABEL_HELPERS_JS = (
    _LABEL_HELPERS_TEMPLATE.replace("__UNKNOWN_LABEL__", json.dumps(UNKNOWN_LABEL))
    .replace("__CONTROL_SELECTOR__", json.dumps(CONTROL_SELECTOR))
    .replace("__CONTAINER_SELECTOR__", json.dumps(CONTAINER_SELECTOR))
    .replace("__GROUP_SELECTOR__", json.dumps(GROUP_SELECTOR))
    .replace("__HEADING_SELECTOR__", json.dumps(HEADING_SELECTOR))
    .replace("__TEXT_INPUT_TYPES__", json.dumps(TEXT_INPUT_TYPES))
)


SCAN_CONTROLS_JS = (
    """
() => {
    // form_fill:scan_controls
"""
    + LABEL_HELPERS_JS
    + """
    const containers = [];
    const containerIds = new Map();
    const controls = Array.from(document.querySelectorAll(CONTROL_SELECTOR)).map((el, index) => {
        const kind = controlType(el);
        const host = el.closest(CONTAINER_SELECTOR);
        let container = null;
        if (host) {
            if (!containerIds.has(host)) {
                containerIds.set(host, containers.length);
                containers.push({ index: containers.length, heading: containerHeading(host) });
            }
            container = containerIds.get(host);
        }
        return {
            index,
            tag: el.tagName.toLowerCase(),
            type: kind,
            name: el.getAttribute("name") || "",
            value: el.value || "",
            checked: Boolean(el.checked),
            required: Boolean(el.required) || el.getAttribute("aria-required") === "true",
            label: inferLabel(el),
            group_label: inferGroupLabel(el),
            options: kind === "select" ? Array.from(el.options).map((option) => (option.text || "").trim()) : [],
            container,
        };
    });
    return { controls, containers };
}
"""
)


APPLY_CONTROL_JS = (
    """
(request) => {
    // form_fill:apply_control
"""
    + LABEL_HELPERS_JS
    + """
    const el = document.querySelectorAll(CONTROL_SELECTOR)[request.index];
    if (!el) {
        return { ok: false, reason: "control_missing" };
    }
    if (inferLabel(el) !== request.expected_label) {
        return { ok: false, reason: "label_changed" };
    }

    if (request.action === "fill") {
        const descriptor = Object.getOwnPropertyDescriptor(Object.getPrototypeOf(el), "value");
        if (descriptor && descriptor.set) {
            descriptor.set.call(el, request.value);
        } else {
            el.value = request.value;
        }
        el.dispatchEvent(new Event("input", { bubbles: true }));
        el.dispatchEvent(new Event("change", { bubbles: true }));
        return { ok: true, changed: true };
    }

    if (request.action === "check") {
        if (Boolean(el.checked) === Boolean(request.value)) {
            return { ok: true, changed: false };
        }
        el.click();
        return { ok: true, changed: true };
    }

    if (request.action === "select") {
        const option = Array.from(el.options).find((candidate) => (candidate.text || "").trim() === request.value);
        if (!option) {
            return { ok: false, reason: "option_missing" };
        }
        el.selectedIndex = option.index;
        el.dispatchEvent(new Event("change", { bubbles: true }));
        return { ok: true, changed: true };
    }

    return { ok: false, reason: "unknown_action" };
}
"""
)
