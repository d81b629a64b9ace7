"""Exception types raised by the SEO compliance optimizer."""


class ComplianceError(Exception):
    """Base error for the compliance optimizer."""
    pass


class RuleValidationError(ComplianceError):
    """An adaptive rule value is not numeric."""

    def __init__(self, key: str, value: object):
        self.key = key
        self.value = value
        super().__init__(f"Adaptive rule {key!r} must be numeric, got {value!r}")


class ExportFormatError(ComplianceError):
    """Unsupported log export format."""
    pass


class CorrectorError(ComplianceError):
    """A corrector failed while rewriting content."""

    def __init__(self, component: str, message: str):
        self.component = component
        super().__init__(f"{component}: {message}")
