"""Central configuration helper for the document sync core."""

import logging
import os


class HelperConfig:
    """Reads every setting of the application from environment variables."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read_raw(self, key: str, default: object | None) -> str | None:
        """Read a raw value, raising if it is missing and no default exists.

        Empty strings count as unset.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return raw.strip() if raw is not None else None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = self._read_raw(key, default)
        return raw if raw is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: An int when the value has no decimal point, else a float.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                or if the value cannot be parsed as a number.
        """
        raw = self._read_raw(key, default)
        if raw is None:
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_int_val(self, key: str, default: int | None = None, minimum: int | None = None) -> int:
        """Read an integer environment variable, optionally enforcing a lower bound.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (int | None): Fallback value if the variable is not set.
            minimum (int | None): Smallest accepted value.

        Returns:
            int: The resolved value.

        Raises:
            ValueError: If the value is missing, not an integer or below the minimum.
        """
        value = self.get_number_val(key, default=default)
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Environment variable '{key.upper()}' must be an integer, got '{value}'.")
        value = int(value)
        if minimum is not None and value < minimum:
            raise ValueError(f"Environment variable '{key.upper()}' must be >= {minimum}, got {value}.")
        return value

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable.

        "true", "1" and "yes" (any case) are truthy, everything else is falsy.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        raw = self._read_raw(key, default)
        if raw is None:
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list environment variable written as "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list[str] | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Returns:
            list: The resolved elements. Blank elements are dropped.

        Raises:
            ValueError: If the variable is missing without default, is not wrapped
                in brackets, or holds elements that cannot be cast.
        """
        raw_val = self._read_raw(key, default)
        if raw_val is None:
            return default
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
