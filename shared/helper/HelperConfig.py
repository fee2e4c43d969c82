"""Environment backed configuration shared by the server, the sync runner and every client."""

import logging
import os
from typing import Any, Callable

_TRUE_VALUES = ("true", "1", "yes", "on")


class HelperConfig:
    """Typed access to environment variables.

    Keys are case-insensitive. An unset or empty variable falls back to the
    given default; without a default it is an error. Each getter raises
    ValueError on a missing or malformed value so that misconfiguration
    surfaces at startup.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @staticmethod
    def _read(key: str, default: Any, parse: Callable[[str], Any]) -> Any:
        raw = (os.getenv(key.upper()) or "").strip()
        if not raw:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return parse(raw)

    def get_string_val(self, key: str, default: str | None = None) -> str:
        return self._read(key, default, str)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Integers stay int, anything with a decimal point becomes float."""
        def parse(raw: str) -> float | int:
            try:
                return float(raw) if "." in raw else int(raw)
            except ValueError:
                raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")
        return self._read(key, default, parse)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        return self._read(key, default, lambda raw: raw.lower() in _TRUE_VALUES)

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list written as "[a,b,c]".

        Args:
            separator (str): Delimiter between elements.
            element_type (type): Callable applied to every element, e.g. int.
        """
        def parse(raw: str) -> list:
            if not (raw.startswith("[") and raw.endswith("]")):
                raise ValueError(f"Environment variable '{key.upper()}' must have the format '[a{separator}b]', got '{raw}'.")
            try:
                return [element_type(item.strip()) for item in raw[1:-1].split(separator) if item.strip()]
            except ValueError as exc:
                raise ValueError(f"Environment variable '{key.upper()}' has an element that is not {element_type.__name__}: {exc}")
        return self._read(key, default, parse)

    def get_logger(self) -> logging.Logger:
        return self._logger
