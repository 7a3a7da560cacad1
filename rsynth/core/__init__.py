"""Core types shared by the synthesizer and the CLI."""

from .errors import ConfigurationError, ErrorCode
from .result import Err, Ok, Result

__all__ = [
    # errors
    "ConfigurationError",
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
]
