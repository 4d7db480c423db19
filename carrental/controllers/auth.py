from flask import Blueprint, jsonify, session

from ..services.user_service import UserService
from .helpers import body

bp = Blueprint("auth", __name__, url_prefix="/auth")


@bp.post("/register")
def register():
    data = body()
    user = UserService.register(
        username=data.get("username"),
        password=data.get("password") or "",
        email=data.get("email"),
        name=data.get("name"),
        phone=data.get("phone"),
    )
    return jsonify(user), 201


@bp.post("/login")
def login():
    data = body()
    user = UserService.authenticate(data.get("username"), data.get("password"))

    # only the identity goes into the cookie; the role is re-read per request
    session.clear()
    session["uid"] = user.user_id
    return jsonify({"user_id": user.user_id, "username": user.username, "role": user.role})


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    session.clear()
    return jsonify({"message": "Logged out"})
