"""Exception hierarchy for the report export pipeline."""


class ReportExportError(Exception):
    """Base class for errors raised by the export pipeline."""


class TemplateError(ReportExportError):
    """A report template is malformed (missing fields, duplicate keys...)."""


class SettingsError(ReportExportError):
    """A settings record or override fragment cannot be applied."""


class UnsupportedFormatError(ReportExportError, ValueError):
    """The requested export format is outside the supported set."""

    def __init__(self, value) -> None:
        super().__init__(
            f"Unsupported export format: {value!r}. Use 'pdf', 'excel' or 'word'."
        )
        self.value = value


class FeatureNotImplementedError(ReportExportError):
    """A collaborator capability exists in the interface but is switched off."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"Feature not implemented yet: {feature}")
        self.feature = feature


class AmountOutOfRangeError(ReportExportError, ValueError):
    """An amount is beyond what the number-naming scheme can express."""

    def __init__(self, amount, maximum) -> None:
        super().__init__(
            f"Amount {amount!r} is out of range (maximum {maximum:,})"
        )
        self.amount = amount
        self.maximum = maximum
