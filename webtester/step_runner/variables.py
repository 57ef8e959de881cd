"""Run-scoped variable store and ${name} substitution."""

import re
from collections.abc import Mapping

from pydantic import JsonValue

BEARER_TOKEN_KEY = "bearerToken"
TOKEN_TYPE_KEY = "tokenType"
DEFAULT_TOKEN_TYPE = "Bearer"

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


class VariableStore:
    """Ordered string variables shared by the steps of one test run."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        """Initialize the store, optionally seeded with variables."""
        self._values: dict[str, str] = dict(initial or {})

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return a variable value or default."""
        return self._values.get(name, default)

    def set(self, name: str, value: str) -> None:
        """Set a variable; the last write wins."""
        self._values[name] = value

    def as_dict(self) -> dict[str, str]:
        """Return a snapshot of the variables."""
        return dict(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values


def substitute(text: str, store: VariableStore) -> str:
    """Replace ${name} placeholders with stored values.

    Unknown names are left verbatim and substituted values are not scanned
    again.
    """
    if "${" not in text:
        return text

    def _replace(match: re.Match[str]) -> str:
        value = store.get(match.group(1))
        return match.group(0) if value is None else value

    return _PLACEHOLDER.sub(_replace, text)


def substitute_body(value: JsonValue, store: VariableStore) -> JsonValue:
    """Substitute string scalars inside a nested body, depth first."""
    if isinstance(value, str):
        return substitute(value, store)
    if isinstance(value, dict):
        return {key: substitute_body(item, store) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute_body(item, store) for item in value]
    return value


def substitute_parameter(value: JsonValue, store: VariableStore) -> JsonValue:
    """Substitute a database parameter value; only strings are rewritten."""
    if isinstance(value, str):
        return substitute(value, store)
    return value
