"""
Authentication blueprint:
- POST /users/register
- POST /users/login
- POST /users/logout
- POST /users/refresh-token
- POST /users/change-password

Tokens travel as httpOnly cookies (accessToken / refreshToken); login also
returns them in the body for clients that use the Authorization header.
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import (
    RegisterSchema,
    LoginSchema,
    ChangePasswordSchema,
    UserOutSchema,
)
from utils.decorators import jwt_required
from utils.media import save_upload
from utils.security import hash_password, verify_password

from .cookies import (
    extract_refresh_token,
    set_access_cookie,
    set_token_cookies,
    clear_token_cookies,
)
from .errors import ApiError

logger = logging.getLogger(__name__)

AVATAR = "avatar"
COVER_IMAGE = "cover-image"

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()


def _accounts():
    return current_app.extensions["account_store"]


def _sessions():
    return current_app.extensions["session_manager"]


def upload_media(field: str, username: str) -> str | None:
    """
    Upload request file `field` for `username`.
    Returns None when no file was sent; raises when the upload fails.
    """
    local_path = save_upload(request.files.get(field), current_app.config["UPLOAD_FOLDER"])
    if local_path is None:
        return None
    url = current_app.extensions["media_store"].upload(local_path, username, f"{username}-{field}")
    if not url:
        label = "Avatar" if field == AVATAR else "Cover Image"
        raise ApiError.validation(f"{label} upload failed")
    return url


@bp.post("/register")
def register():
    """
    Register a new account.
    ---
    tags:
      - Auth
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: full_name, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: cover-image, type: file, required: false }
    responses:
      201:
        description: Created
      409:
        description: Username or email already taken
      422:
        description: Validation error
    """
    payload = request.form.to_dict() or request.get_json(silent=True) or {}
    data = register_schema.load(payload)

    # Before any upload, so a rejected registration leaves no media behind
    accounts = _accounts()
    if accounts.exists(username=data["username"], email=data["email"]):
        raise ApiError.conflict("User Already Exists")

    if not request.files.get(AVATAR):
        raise ApiError.validation("Avatar is required")
    avatar_url = upload_media(AVATAR, data["username"])
    try:
        cover_url = upload_media(COVER_IMAGE, data["username"])
    except ApiError:
        # No account will point at the avatar
        current_app.extensions["media_store"].delete(avatar_url)
        raise

    user = accounts.create(
        full_name=data["full_name"],
        email=data["email"],
        username=data["username"],
        password_hash=hash_password(data["password"]),
        avatar=avatar_url,
        cover_image=cover_url,
    )
    logger.info("Registered account %s", user.id)

    return jsonify(
        {
            "data": user_out_schema.dump(user),
            "message": "User Created Successfully",
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login with username or email; sets accessToken and refreshToken cookies.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (sets cookies, returns tokens)
      401:
        description: User Not Found / Incorrect Password
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)

    user = _accounts().find_by_identifier(username=data.get("username"), email=data.get("email"))
    if user is None:
        raise ApiError.unauthorized("User Not Found")
    if not verify_password(data["password"], user.password_hash):
        logger.info("Failed login for account %s", user.id)
        raise ApiError.unauthorized("Incorrect Password")

    access_token, refresh_token = _sessions().start(user)

    response = jsonify(
        {
            "data": {
                "user": user_out_schema.dump(user),
                "access_token": access_token,
                "refresh_token": refresh_token,
            },
            "message": "Login Successful",
        }
    )
    set_token_cookies(response, access_token, refresh_token)
    return response, 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: forget the stored refresh token and clear both cookies.
    The access token stays valid until it expires.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    _sessions().end(g.current_user)
    response = jsonify({"data": None, "message": "Logout Successful"})
    clear_token_cookies(response)
    return response, 200


@bp.post("/refresh-token")
def refresh_token():
    """
    Mint a new access token from the refresh token cookie (or body).
    The refresh token itself is not rotated.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: New access token issued
      401:
        description: Missing, invalid or superseded refresh token
      403:
        description: Session expired; log in again
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    token = extract_refresh_token(request) or payload.get("refresh_token")
    result = _sessions().renew(token)

    response = jsonify(
        {
            "data": {"access_token": result.access_token},
            "message": "Access Token Refreshed",
        }
    )
    set_access_cookie(response, result.access_token)
    return response, 200


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the current account's password. Existing tokens stay valid.
    ---
    tags:
      - Auth
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
             old_password: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password changed
      401:
        description: Incorrect Old Password
    """
    payload = request.get_json(silent=True) or {}
    data = change_password_schema.load(payload)

    user = _accounts().find_by_id(g.current_user.id)
    if user is None:
        raise ApiError.unauthorized("User Not Found")
    if not verify_password(data["old_password"], user.password_hash):
        raise ApiError.unauthorized("Incorrect Old Password")

    _accounts().update_fields(user.id, password_hash=hash_password(data["new_password"]))
    logger.info("Password changed for account %s", user.id)
    return jsonify({"data": None, "message": "Password Changed Successfully"}), 200
