from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import UpdateDetailsSchema, UserOutSchema
from utils.decorators import jwt_required

from .auth import AVATAR, COVER_IMAGE, upload_media
from .errors import ApiError

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

update_details_schema = UpdateDetailsSchema()
user_out_schema = UserOutSchema()


def _accounts():
    return current_app.extensions["account_store"]


@bp.get("/current-user")
@jwt_required()
def current_user():
    """
    Get the logged-in account.
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
    return jsonify({"data": user_out_schema.dump(g.current_user)}), 200


@bp.patch("/user")
@jwt_required()
def update_details():
    """
    Update full name and/or email.
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
             full_name: { type: string }
             email: { type: string }
    responses:
      200:
        description: OK
      409:
        description: Email already in use
    """
    payload = request.get_json(silent=True) or {}
    data = update_details_schema.load(payload)

    user = g.current_user
    accounts = _accounts()
    if data.get("email") and accounts.exists(email=data["email"], exclude_id=user.id):
        raise ApiError.conflict("Email already in use")

    updated = accounts.update_fields(user.id, **data)
    return jsonify(
        {
            "data": user_out_schema.dump(updated),
            "message": "User Updated Successfully",
        }
    ), 200


def _replace_media(field: str, column: str, label: str):
    user = g.current_user
    if not request.files.get(field):
        raise ApiError.validation(f"{label} file is missing")
    url = upload_media(field, user.username)
    updated = _accounts().update_fields(user.id, **{column: url})
    logger.info("Updated %s for account %s", column, user.id)
    return jsonify(
        {
            "data": user_out_schema.dump(updated),
            "message": f"{label} Updated Successfully",
        }
    ), 200


@bp.patch("/avatar")
@jwt_required()
def update_avatar():
    """
    Replace the avatar image.
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
      200:
        description: OK
      422:
        description: Missing file or upload failed
    """
    return _replace_media(AVATAR, "avatar", "Avatar")


@bp.patch("/cover-image")
@jwt_required()
def update_cover_image():
    """
    Replace the cover image.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: cover-image, type: file, required: true }
    responses:
      200:
        description: OK
      422:
        description: Missing file or upload failed
    """
    return _replace_media(COVER_IMAGE, "cover_image", "Cover Image")
