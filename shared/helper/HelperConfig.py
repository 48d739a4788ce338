"""Central configuration helper for the knowledge base chat pipeline."""

import logging
import os


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

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
        key = key.upper()
        val = os.getenv(key) or None  # empty string → None
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return val.strip() if val is not None else default

    def get_optional_string_val(self, key: str) -> str | None:
        """Read a string environment variable that may legitimately be absent.

        Args:
            key (str): Environment variable name (case-insensitive).

        Returns:
            str | None: The stripped value, or None if unset or blank.
        """
        val = os.getenv(key.upper()) or ""
        return val.strip() or None

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value cannot be parsed as a number.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        raw = raw.strip()
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (bool | None): Fallback value if the variable is not set.

        Returns:
            bool: The resolved boolean value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        return raw.strip().lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list environment variable written as "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Returns:
            list: The resolved list of elements.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                if the brackets are missing, or if an element cannot be cast.
        """
        raw_val = self.get_optional_string_val(key)
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains invalid elements for type {element_type.__name__}: {e}")

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
