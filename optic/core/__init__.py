"""Core types shared by every layer."""

from .config import ActionInputs, ConfigError, load_inputs
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ActionInputs",
    "ConfigError",
    "load_inputs",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
