import json
import logging
from functools import wraps

from django.core.exceptions import ObjectDoesNotExist
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from .board_manager import BoardManager
from .exceptions import BoardError, InvalidChange
from .models import Board, Card
from .sync import get_discussion_updates, get_history_updates, get_updates

logger = logging.getLogger(__name__)


def error_response(message, code, status):
    return JsonResponse({"error": message, "code": code}, status=status)


def board_api(view):
    """JSON error handling and login check for the board API."""

    @wraps(view)
    def wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error_response("Authentication required.", "not_authenticated", 403)
        try:
            return view(request, *args, **kwargs)
        except BoardError as e:
            logger.info("Rejected %s: %s", request.path, e)
            return error_response(str(e), e.code, 400)
        except ObjectDoesNotExist as e:
            return error_response(str(e) or "Not found.", "not_found", 404)

    return csrf_exempt(wrapped)


def get_timestamp(request):
    try:
        return int(request.GET.get("timestamp") or 0)
    except ValueError:
        raise InvalidChange("Invalid timestamp") from None


def get_id(data, key, required=True):
    """Read an id from request data, ``0`` and ``null`` meaning "none"."""
    value = data.get(key)
    if value in (None, 0, "0", ""):
        if required:
            raise InvalidChange(f"Missing {key}")
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidChange(f"Invalid {key}: {value}") from None


def get_ids(data, key):
    """Read an optional list of ids, an empty or missing list meaning "none"."""
    values = data.get(key)
    if not values:
        return None
    if not isinstance(values, list):
        raise InvalidChange(f"{key} must be a list")
    return [get_id({key: value}, key) for value in values]


def get_fields(data):
    fields = data.get("data") or {}
    if not isinstance(fields, dict):
        raise InvalidChange("data must be an object")
    return fields


ACTIONS = {
    "add_column": lambda manager, data: manager.add_column(
        get_id(data, "after", required=False), **get_fields(data)
    ),
    "add_card": lambda manager, data: manager.add_card(
        get_id(data, "column_id"), get_id(data, "after", required=False), **get_fields(data)
    ),
    "move_column": lambda manager, data: manager.move_column(
        get_id(data, "column_id"), get_id(data, "after", required=False)
    ),
    "move_card": lambda manager, data: manager.move_card(
        get_id(data, "card_id"),
        get_id(data, "after", required=False),
        get_id(data, "column_id", required=False),
    ),
    "delete_column": lambda manager, data: manager.delete_column(get_id(data, "column_id")),
    "delete_card": lambda manager, data: manager.delete_card(get_id(data, "card_id")),
    "assign_user": lambda manager, data: manager.assign_user(
        get_id(data, "card_id"), get_id(data, "user_id")
    ),
    "unassign_user": lambda manager, data: manager.unassign_user(
        get_id(data, "card_id"), get_id(data, "user_id")
    ),
    "set_card_complete": lambda manager, data: manager.set_card_complete(
        get_id(data, "card_id"), bool(data.get("state"))
    ),
    "set_column_locked": lambda manager, data: manager.set_column_locked(
        get_id(data, "column_id"), bool(data.get("state"))
    ),
    "set_board_columns_locked": lambda manager, data: manager.set_board_columns_locked(
        bool(data.get("state"))
    ),
    "add_discussion_message": lambda manager, data: manager.add_discussion_message(
        get_id(data, "card_id"), str(data.get("message") or "")
    ),
    "delete_discussion_message": lambda manager, data: manager.delete_discussion_message(
        get_id(data, "message_id"), get_id(data, "card_id")
    ),
    "update_card": lambda manager, data: manager.update_card(
        get_id(data, "card_id"), get_fields(data)
    ),
    "update_column": lambda manager, data: manager.update_column(
        get_id(data, "column_id"), get_fields(data)
    ),
    "push_card_copy": lambda manager, data: manager.push_card_copy(
        get_id(data, "card_id"), get_ids(data, "board_ids")
    ),
    "save_as_template": lambda manager, data: manager.create_template(),
    "delete_board": lambda manager, data: manager.delete_board(),
}


@board_api
@require_GET
def board_list(request):
    boards = Board.objects.filter(template=False)
    return JsonResponse(
        {
            "boards": [
                {"id": board.pk, "heading": board.heading, "timemodified": board.timemodified}
                for board in boards
            ]
        }
    )


@board_api
@require_GET
def board_updates(request, board_id):
    board = Board.objects.get(pk=board_id)
    return JsonResponse(
        get_updates(board, get_timestamp(request), request.user), safe=False
    )


@board_api
@require_GET
def discussion_updates(request, board_id, card_id):
    card = Card.objects.get(pk=card_id, board_id=board_id)
    return JsonResponse(
        get_discussion_updates(card, get_timestamp(request), request.user), safe=False
    )


@board_api
@require_GET
def history_updates(request, board_id, card_id):
    card = Card.objects.get(pk=card_id, board_id=board_id)
    return JsonResponse(
        get_history_updates(card, get_timestamp(request)), safe=False
    )


@board_api
@require_POST
def board_change(request, board_id, action):
    board = Board.objects.get(pk=board_id)
    if action not in ACTIONS:
        raise InvalidChange(f"Unknown action: {action}")
    try:
        data = json.loads(request.body or b"{}")
    except ValueError:
        raise InvalidChange("Malformed JSON") from None
    if not isinstance(data, dict):
        raise InvalidChange("Request body must be an object")
    manager = BoardManager(board, request.user)
    ACTIONS[action](manager, data)
    return JsonResponse(manager.get_formatted_updates(), safe=False)
