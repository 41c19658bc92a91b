"""
Error taxonomy for the form-schema analysis pass.

Fatal problems are exceptions raised at the component boundary where they
are detected. Non-fatal problems are warnings issued with ``warnings.warn``.
"""


class HFCGenError(Exception):
    """Base class for all fatal hfcgen errors."""
    pass


class SchemaError(HFCGenError):
    """Raised when a required sheet or column is absent from the XLSForm."""
    pass


class MalformedRepeatStructureError(HFCGenError):
    """Raised when begin_repeat/end_repeat markers cannot be paired."""
    pass


class EmptyInstrumentWarning(UserWarning):
    """Issued when no usable question rows remain after filtering."""
    pass


__all__ = [
    "HFCGenError",
    "SchemaError",
    "MalformedRepeatStructureError",
    "EmptyInstrumentWarning",
]
