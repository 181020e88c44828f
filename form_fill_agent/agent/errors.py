"""Failure kinds raised by the discovery, mapping and fill phases."""


class FormFillError(Exception):
    pass


class AcquisitionError(FormFillError):
    """The browser session or target document is not usable. Aborts the run."""


class ExtractionError(FormFillError):
    """The value-mapping reply held no parseable JSON object. Aborts the run."""


class ValueMappingError(FormFillError):
    """The value-mapping provider could not be created or did not answer. Aborts the run."""


class FieldApplicationError(FormFillError):
    """One control could not be located or mutated. Recovered per field."""

    def __init__(self, label: str, reason: str) -> None:
        super().__init__(f"{reason} (field={label!r})")
        self.label = label
        self.reason = reason


class ZeroFieldsWarning(UserWarning):
    pass
