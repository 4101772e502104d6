"""
Input validation for service-layer create/update payloads.

``FieldChecker`` walks a request payload field by field, collects every
problem into a ``{field: message}`` dict and produces a cleaned dict of the
accepted values.  ``validated()`` raises a single ValidationError carrying
all field errors, so callers see every problem at once and nothing is
written.

    checker = FieldChecker(data)                 # create: required enforced
    checker.text("name", required=True)
    checker.order("display_order")
    cleaned = checker.validated("Invalid role data")

    checker = FieldChecker(data, partial=True)   # update: only supplied keys
"""

from urllib.parse import urlparse

from techledger.core.exceptions import ValidationError

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000
MAX_NOTES_LENGTH = 2000
MAX_URL_LENGTH = 2048
MAX_PATH_LENGTH = 500

ALLOWED_URL_SCHEMES = ("http", "https")


def is_valid_http_url(value) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not isinstance(value, str) or not value.strip():
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme.lower() in ALLOWED_URL_SCHEMES and bool(parsed.netloc)


def is_non_negative_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


class FieldChecker:
    """Collects field errors and cleaned values for one payload."""

    def __init__(self, data: dict | None, *, partial: bool = False) -> None:
        if data is not None and not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        self.data = data or {}
        self.partial = partial
        self.errors: dict[str, str] = {}
        self.cleaned: dict = {}

    # ── internals ────────────────────────────────────────────────────────

    def _present(self, name: str) -> bool:
        return name in self.data

    def _skip(self, name: str, required: bool) -> bool:
        """True when the field is absent and that is acceptable."""
        if self._present(name):
            return False
        if required and not self.partial:
            self.errors[name] = f"{name} is required"
        return True

    # ── field kinds ──────────────────────────────────────────────────────

    def text(self, name: str, *, required: bool = False, max_length: int = MAX_NAME_LENGTH):
        """Free text.  Required fields are trimmed and may not be blank."""
        if self._skip(name, required):
            return self
        value = self.data[name]
        if value is None:
            if required:
                self.errors[name] = f"{name} cannot be empty"
            else:
                self.cleaned[name] = None
            return self
        if not isinstance(value, str):
            self.errors[name] = f"{name} must be a string"
            return self
        if required:
            value = value.strip()
            if not value:
                self.errors[name] = f"{name} cannot be empty"
                return self
        if len(value) > max_length:
            self.errors[name] = f"{name} must not exceed {max_length} characters"
            return self
        self.cleaned[name] = value
        return self

    def order(self, name: str, *, required: bool = False, minimum: int = 0):
        """Ordering integer: ``display_order`` (≥ 0) or ``order_number`` (≥ 1)."""
        if self._skip(name, required):
            return self
        value = self.data[name]
        check = is_positive_int if minimum >= 1 else is_non_negative_int
        if not check(value):
            kind = "a positive integer" if minimum >= 1 else "a non-negative integer"
            self.errors[name] = f"{name} must be {kind}"
            return self
        self.cleaned[name] = value
        return self

    def ref_id(self, name: str, *, required: bool = False):
        """Foreign id supplied by the caller (positive integer or null)."""
        if self._skip(name, required):
            return self
        value = self.data[name]
        if value is None and not required:
            self.cleaned[name] = None
            return self
        if not is_positive_int(value):
            self.errors[name] = f"{name} must be a positive integer"
            return self
        self.cleaned[name] = value
        return self

    def choice(self, name: str, choices, *, required: bool = False):
        if self._skip(name, required):
            return self
        value = self.data[name]
        if value not in choices:
            self.errors[name] = f"Must be one of: {', '.join(choices)}"
            return self
        self.cleaned[name] = value
        return self

    def url(self, name: str, *, required: bool = False):
        if self._skip(name, required):
            return self
        value = self.data[name]
        if value is None and not required:
            self.cleaned[name] = None
            return self
        if not is_valid_http_url(value):
            self.errors[name] = "Must be a valid HTTP(S) URL"
            return self
        value = value.strip()
        if len(value) > MAX_URL_LENGTH:
            self.errors[name] = f"{name} must not exceed {MAX_URL_LENGTH} characters"
            return self
        self.cleaned[name] = value
        return self

    def boolean(self, name: str):
        if self._skip(name, False):
            return self
        value = self.data[name]
        if not isinstance(value, bool):
            self.errors[name] = f"{name} must be true or false"
            return self
        self.cleaned[name] = value
        return self

    def json_list(self, name: str):
        """Opaque structured payload: any JSON list (or null → empty)."""
        if self._skip(name, False):
            return self
        value = self.data[name]
        if value is None:
            self.cleaned[name] = []
            return self
        if not isinstance(value, list):
            self.errors[name] = f"{name} must be an array"
            return self
        self.cleaned[name] = value
        return self

    def forbid(self, *names: str, reason: str):
        for name in names:
            if self._present(name):
                self.errors[name] = reason
        return self

    # ── result ───────────────────────────────────────────────────────────

    def validated(self, message: str) -> dict:
        """Return cleaned values or raise one ValidationError with all errors."""
        if self.partial and not self.errors and not self.cleaned:
            self.errors["_general"] = "At least one field must be provided for update"
        if self.errors:
            raise ValidationError(message, details=self.errors)
        return self.cleaned


def check_batch(items, configure) -> list[dict]:
    """Validate every entry of a batch payload before anything is written.

    ``configure`` receives a FieldChecker per entry and declares its fields.
    Errors are reported per entry as ``items[<index>]``.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError(
            "Batch must be a non-empty list", details={"items": "Provide at least one entry"},
        )
    cleaned, errors = [], {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"items[{index}]"] = "Each entry must be an object"
            continue
        checker = FieldChecker(item)
        configure(checker)
        if checker.errors:
            errors[f"items[{index}]"] = checker.errors
            continue
        cleaned.append(checker.cleaned)
    if errors:
        raise ValidationError("Invalid batch entries", details=errors)
    return cleaned
