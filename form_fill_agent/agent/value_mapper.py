"""Builds the value-mapping prompt and validates what the model sends back."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from .errors import ExtractionError
from .fields import FieldDescriptor, ValueAssignment, describe_fields

DEFAULT_CONTEXT = "General form filling with realistic, appropriate data"

VALUE_MAPPING_PROMPT = """
You are an intelligent form-filling assistant. Provide appropriate values for the following form fields based on your knowledge and the context provided.

Context: {context}

Form Fields:
{fields}

Respond with a JSON object where each key is the field label exactly as written above and the value is the data to fill in.
- For RADIO and SELECT fields, choose exactly one of the listed options and copy it verbatim.
- For CHECKBOX fields, return true or false.
- For TEXT and TEXTAREA fields, provide realistic sample data as a string.
- Leave out fields you cannot answer.

Example format:
{{
  "Full Name": "John Doe",
  "Email": "john.doe@example.com",
  "Age": "25",
  "Country": "United States",
  "Subscribe to newsletter": true
}}

Respond only with the JSON object, no additional text.
"""


class JsonGenerator(Protocol):
    async def generate_json(self, prompt: str) -> dict: ...


def build_value_prompt(fields: Sequence[FieldDescriptor], context: Optional[str] = None) -> str:
    return VALUE_MAPPING_PROMPT.format(
        context=(context or "").strip() or DEFAULT_CONTEXT,
        fields=describe_fields(fields),
    ).strip()


def normalize_value_assignment(data: Any) -> ValueAssignment:
    """
    Keep only entries shaped like label -> str | bool | list[str].

    Numbers become strings; anything else is dropped with a warning.
    """
    if not isinstance(data, dict):
        raise ExtractionError("value mapping is not a JSON object")

    values: ValueAssignment = {}
    for label, value in data.items():
        if not isinstance(label, str):
            continue
        if isinstance(value, (str, bool)):
            values[label] = value
        elif isinstance(value, (int, float)):
            values[label] = str(value)
        elif isinstance(value, list) and all(isinstance(item, str) for item in value):
            values[label] = list(value)
        elif value is None:
            continue
        else:
            logging.warning("value_mapping_entry_dropped label=%r type=%s", label, type(value).__name__)
    return values


async def request_value_assignment(
    llm_client: JsonGenerator,
    fields: Sequence[FieldDescriptor],
    context: Optional[str] = None,
) -> ValueAssignment:
    prompt = build_value_prompt(fields, context)
    logging.debug("value_mapping_prompt fields=%d chars=%d", len(fields), len(prompt))
    data = await llm_client.generate_json(prompt)
    values = normalize_value_assignment(data)

    known_labels = {field.label for field in fields}
    unknown = [label for label in values if label not in known_labels]
    if unknown:
        logging.info("value_mapping_unknown_labels count=%d labels=%r", len(unknown), unknown)
    logging.info("value_mapping_received entries=%d", len(values))
    return values
