# handlers/category_handler.py
from flask import Blueprint

from ledger.handlers.base import run, json_body, number_field, envelope
from ledger.services import categories

bp = Blueprint("budgets", __name__)


@bp.route("/users/<owner_id>/budgets", methods=["GET"])
def list_budgets(owner_id):
    found = run(categories.list_categories, owner_id)
    return envelope([category.to_dict() for category in found])


@bp.route("/budgets", methods=["POST"])
def create_budget():
    body = json_body("category", "type", "budget", "ownerId")
    category = run(
        categories.create_category,
        body["ownerId"],
        body["category"],
        body["type"],
        number_field(body, "budget"),
        body.get("period") or "monthly",
    )
    return envelope(category.to_dict(), 201)


@bp.route("/budgets/<category_id>", methods=["PUT"])
def update_budget(category_id):
    body = json_body("category", "type", "budget")
    category = run(
        categories.update_category,
        category_id,
        body["category"],
        body["type"],
        number_field(body, "budget"),
        body.get("period"),
    )
    return envelope(category.to_dict())


@bp.route("/budgets/<category_id>", methods=["DELETE"])
def delete_budget(category_id):
    deleted_id = run(categories.delete_category, category_id)
    return envelope({"id": deleted_id})


@bp.route("/budgets/<category_id>/reset", methods=["POST"])
def reset_budget(category_id):
    category = run(categories.reset_category, category_id)
    return envelope(category.to_dict())
