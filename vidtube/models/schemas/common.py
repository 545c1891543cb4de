from marshmallow import fields


def strip_strings(data, skip=()):
    """Return a plain dict copy of a request payload with string values trimmed."""
    if not hasattr(data, "items"):
        return data
    return {
        key: value.strip() if isinstance(value, str) and key not in skip else value
        for key, value in data.items()
    }


class NonBlankString(fields.String):
    """String that must contain something other than whitespace."""

    default_error_messages = {"blank": "Field cannot be blank."}

    def __init__(self, *args, strip: bool = True, **kwargs):
        self.strip = strip
        super().__init__(*args, **kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        value = super()._deserialize(value, attr, data, **kwargs)
        if not value.strip():
            raise self.make_error("blank")
        return value.strip() if self.strip else value
