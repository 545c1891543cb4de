from marshmallow import EXCLUDE, Schema, fields, pre_load, validates_schema, ValidationError

from vidtube.models.schemas.common import NonBlankString, strip_strings


def _norm(v):
    return v.strip().lower() if isinstance(v, str) else v


class RegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = NonBlankString(required=True)
    email = fields.Email(required=True)
    password = NonBlankString(required=True, load_only=True, strip=False)
    fullname = NonBlankString(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = strip_strings(data, skip=("password",))
        for key in ("username", "email"):
            if key in data:
                data[key] = _norm(data[key])
        return data


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(load_default=None)
    email = fields.String(load_default=None)
    password = fields.String(load_default=None, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = strip_strings(data, skip=("password",))
        for key in ("username", "email"):
            if key in data:
                data[key] = _norm(data[key]) or None
        return data

    @validates_schema
    def require_identifier(self, data, **kwargs):
        if not data.get("username") and not data.get("email"):
            raise ValidationError("either username or email is required", "username")
        if not data.get("password"):
            raise ValidationError("password is required", "password")


class ChangePasswordSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    password = fields.String(load_default="", load_only=True)
    new_password = fields.String(load_default="", load_only=True, data_key="newPassword")
    confirm_password = fields.String(load_default="", load_only=True, data_key="confirmPassword")

    @validates_schema
    def check_new_password(self, data, **kwargs):
        if data.get("new_password") != data.get("confirm_password"):
            raise ValidationError("New password and confirm password do not match", "confirmPassword")
        if not (data.get("new_password") or "").strip():
            raise ValidationError("New password is required, cannot be empty", "newPassword")


class AccountUpdateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email()
    fullname = NonBlankString()

    @pre_load
    def normalize(self, data, **kwargs):
        data = strip_strings(data)
        if "email" in data:
            data["email"] = _norm(data["email"])
        return data

    @validates_schema
    def require_one(self, data, **kwargs):
        if not data:
            raise ValidationError("email or fullname is required")


class UserOutSchema(Schema):
    """Sanitized user: password hash and refresh token are never dumped."""
    id = fields.String()
    username = fields.String()
    email = fields.String()
    fullname = fields.String()
    avatar = fields.String(allow_none=True)
    cover_image = fields.String(allow_none=True, data_key="coverImage")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
