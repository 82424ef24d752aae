from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

CUSTOM_FIELDS_KEY = "customFields"
AUTOFILL_ACTION = "autofill"


class InvalidInvocation(ValueError):
    """Raised when an autofill command is malformed (wrong action, missing profile)."""


def _clean_value(value: object) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    text = str(value)
    if not text.strip():
        return None
    return text


@dataclass(frozen=True)
class Profile:
    """Read-only view over one profile for the duration of a fill.

    Empty values are dropped on construction so they can never match or fill blank.
    """

    values: Mapping[str, str] = field(default_factory=dict)
    custom_fields: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: Mapping[str, object]) -> "Profile":
        if not isinstance(data, Mapping):
            raise InvalidInvocation("Profile payload must be an object")
        values: Dict[str, str] = {}
        custom: Dict[str, str] = {}
        for key, raw in data.items():
            if key == CUSTOM_FIELDS_KEY:
                if isinstance(raw, Mapping):
                    for label, custom_value in raw.items():
                        cleaned = _clean_value(custom_value)
                        if cleaned is not None and str(label).strip():
                            custom[str(label)] = cleaned
                continue
            cleaned = _clean_value(raw)
            if cleaned is not None:
                values[str(key)] = cleaned
        return cls(values=MappingProxyType(values), custom_fields=MappingProxyType(custom))

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def iter_custom_fields(self) -> Iterator[Tuple[str, str]]:
        return iter(self.custom_fields.items())

    def is_empty(self) -> bool:
        return not self.values and not self.custom_fields


def parse_autofill_message(message: object) -> Profile:
    if not isinstance(message, Mapping):
        raise InvalidInvocation("Invalid request format")
    action = message.get("action")
    if action != AUTOFILL_ACTION:
        raise InvalidInvocation(f"Unknown action: {action!r}")
    data = message.get("data")
    if data is None:
        raise InvalidInvocation("Missing profile data")
    return Profile.from_payload(data)
