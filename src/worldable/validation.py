"""
Input validators for world entity references.

Each validator accepts the same inputs as the matching resolver (an id, a
string of digits, or a natural key) and returns ``(ok, message)``:

    >>> ValidCountry(db)("NG")
    (True, None)
    >>> ValidCountry(db).with_message("Pick a country")("Atlantis")
    (False, 'Pick a country')
"""

from typing import Any, Optional

from .entities import get_entity_type
from .store import WorldDatabase


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() in ("", "0")
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return value == 0


class EntityRule:
    entity_tag: str = ""
    default_message: str = "The :attribute is invalid."

    def __init__(self, db: WorldDatabase, message: Optional[str] = None):
        self.db = db
        self.message = message

    def with_message(self, message: str) -> "EntityRule":
        self.message = message
        return self

    def _fail(self, attribute: str) -> tuple[bool, str]:
        return False, (self.message or self.default_message).replace(":attribute", attribute)

    def validate(self, value: Any, attribute: str = "value") -> tuple[bool, Optional[str]]:
        if _is_empty(value):
            return self._fail(attribute)
        if not isinstance(value, (int, str)) or isinstance(value, bool):
            return self._fail(attribute)
        if get_entity_type(self.entity_tag).resolve(self.db, value) is None:
            return self._fail(attribute)
        return True, None

    def __call__(self, value: Any, attribute: str = "value") -> tuple[bool, Optional[str]]:
        return self.validate(value, attribute)


class ValidCountry(EntityRule):
    """Country name, ISO alpha-2 or alpha-3 code, or id."""

    entity_tag = "country"
    default_message = "The :attribute must be a valid country name or code."


class ValidCity(EntityRule):
    """City name or id."""

    entity_tag = "city"
    default_message = "The :attribute must be a valid city name."


class ValidCurrency(EntityRule):
    """Currency code, name or id."""

    entity_tag = "currency"
    default_message = "The :attribute must be a valid currency code or name."


class ValidLanguage(EntityRule):
    """Language name, ISO 639-1 code or id."""

    entity_tag = "language"
    default_message = "The :attribute must be a valid language name or code."
