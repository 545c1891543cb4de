from __future__ import annotations

import logging

from flask import Blueprint, request, g
from sqlalchemy.exc import SQLAlchemyError

from vidtube.exceptions import ConflictError, UploadError, ValidationError
from vidtube.api.responses import api_response, request_payload
from vidtube.models import storage
from vidtube.models.user import User
from vidtube.models.schemas.user import AccountUpdateSchema, UserOutSchema
from vidtube.utils.decorators import jwt_required
from vidtube.utils.media import get_media_store

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

account_update_schema = AccountUpdateSchema()
user_out_schema = UserOutSchema()


def _replace_image(attr: str, field: str, folder: str, label: str):
    """Upload a new image for the current user and drop the one it replaces."""
    file = request.files.get(field)
    if file is None or not file.filename:
        raise ValidationError(f"{label} file is required")

    media = get_media_store()
    asset = media.upload(file, folder=folder)
    if asset is None:
        raise UploadError(f"Failed to upload {label.lower()}")

    user: User = g.current_user
    previous = getattr(user, attr)
    setattr(user, attr, asset.url)
    try:
        user.save()
    except SQLAlchemyError:
        media.destroy(asset.public_id)
        raise

    old_id = media.public_id_from_url(previous)
    if old_id:
        try:
            media.destroy(old_id)
        except OSError:
            logger.warning("Could not delete replaced %s %s", label.lower(), old_id, exc_info=True)
    return user


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return api_response(user_out_schema.dump(g.current_user), "Current user fetched successfully")


@bp.patch("/account")
@jwt_required()
def update_account():
    """
    Update email and/or fullname of the current user.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             fullname: { type: string }
    responses:
      200: { description: OK }
      400: { description: Validation error }
      409: { description: Email already in use }
    """
    data = account_update_schema.load(request_payload())

    user: User = g.current_user
    if "email" in data and data["email"] != user.email:
        session = storage.get_session()
        taken = session.query(User).filter(User.email == data["email"], User.id != user.id).first()
        if taken:
            raise ConflictError("Email already in use")

    for key, value in data.items():
        setattr(user, key, value)
    user.save()
    return api_response(user_out_schema.dump(user), "Account details updated successfully")


@bp.patch("/avatar")
@jwt_required()
def update_avatar():
    """
    Replace the current user's avatar.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: avatar, type: file, required: true }
    responses:
      200: { description: OK }
      400: { description: Avatar file missing }
      500: { description: Upload failed }
    """
    user = _replace_image("avatar", "avatar", "avatars", "Avatar")
    return api_response(user_out_schema.dump(user), "Avatar updated successfully")


@bp.patch("/cover-image")
@jwt_required()
def update_cover_image():
    """
    Replace the current user's cover image.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: coverImage, type: file, required: true }
    responses:
      200: { description: OK }
      400: { description: Cover image file missing }
      500: { description: Upload failed }
    """
    user = _replace_image("cover_image", "coverImage", "covers", "Cover image")
    return api_response(user_out_schema.dump(user), "Cover image updated successfully")
