# handlers/user_handler.py
from flask import Blueprint

from ledger.handlers.base import run, json_body, envelope
from ledger.services import users

bp = Blueprint("users", __name__)


@bp.route("/users", methods=["POST"])
def create_user():
    body = json_body("clerkId", "name", "email")
    user = run(users.create_user, body["clerkId"], body["name"], body["email"])
    return envelope(user.to_dict(), 201)


@bp.route("/users/<clerk_id>", methods=["GET"])
def get_user(clerk_id):
    user = run(users.get_user, clerk_id)
    return envelope(user.to_dict())
