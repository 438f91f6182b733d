"""Field sets of the patches sent to clients, one function per entity kind."""


def fullname(user):
    return user.get_full_name() or user.get_username()


def user_fields(user):
    return {"id": user.pk, "fullname": fullname(user)}


def board_fields(board):
    return {
        "id": board.pk,
        "name": board.name,
        "heading": board.heading,
        "description": board.description,
        "sequence": board.sequence,
        "locked": board.locked,
        "template": board.template,
        "user": board.user_id,
        "group_name": board.group_name,
        "timemodified": board.timemodified,
    }


def column_fields(column):
    return {
        "id": column.pk,
        "board": column.board_id,
        "title": column.title,
        "sequence": column.sequence,
        "locked": column.locked,
        "options": column.column_options,
        "timemodified": column.timemodified,
    }


def can_edit(card, user, assignees):
    if user is None:
        return False
    return user.is_staff or user.pk == card.created_by_id or user.pk in assignees


def card_fields(card, user=None, assignees=None):
    if assignees is None:
        assignees = assignee_ids(card)
    return {
        "id": card.pk,
        "board": card.board_id,
        "column": card.column_id,
        "title": card.title,
        "description": card.description,
        "completed": card.completed,
        "discussion": card.discussion,
        "options": card.card_options,
        "due_date": card.due_date,
        "created_by": card.created_by_id,
        "original_id": card.original_id,
        "timemodified": card.timemodified,
        **assignment_fields(card, user, assignees),
    }


def assignee_ids(card):
    return sorted(card.assignees.values_list("pk", flat=True))


def assignment_fields(card, user, assignees):
    return {
        "assignees": list(assignees),
        "selfassigned": user is not None and user.pk in assignees,
        "canedit": can_edit(card, user, assignees),
    }


def discussion_fields(message, user=None):
    return {
        "id": message.pk,
        "card": message.card_id,
        "author": message.author_id,
        "fullname": fullname(message.author) if message.author_id else "",
        "content": message.content,
        "timecreated": message.timecreated,
        "candelete": user is not None
        and (user.is_staff or user.pk == message.author_id),
    }


def history_fields(entry):
    return {
        "id": entry.pk,
        "board": entry.board_id,
        "column": entry.column_id,
        "card": entry.card_id,
        "user": entry.user_id,
        "affected_user": entry.affected_user_id,
        "action": entry.action,
        "type": entry.type,
        "parameters": entry.parameters,
        "timestamp": entry.timestamp,
    }
