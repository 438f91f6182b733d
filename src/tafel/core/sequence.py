"""Ordered id sequences.

A sequence is the render order of the children of a board (columns) or of a
column (cards). In Python it is always a ``list`` of ints; the comma separated
form only exists in the database and on the wire, see ``encode``/``decode``.

An anchor of ``None`` means "top of the list". Anchors that are not part of
the sequence are not an error: the item is appended instead, so a change does
not fail just because someone else removed the anchor in the meantime.
"""

DELIMITER = ","


def decode(value):
    """Turn the stored/wire representation into a list of ids."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [int(item) for item in value]
    return [int(item) for item in str(value).split(DELIMITER)]


def encode(items):
    return DELIMITER.join(str(int(item)) for item in items)


def insert_after(items, after, new_item):
    """Insert ``new_item`` behind ``after``.

    Ids stay unique: if ``new_item`` is already part of the sequence, its old
    position is dropped first.
    """
    result = remove(items, new_item)
    if after is None:
        return [new_item, *result]
    if after not in result:
        result.append(new_item)
        return result
    position = result.index(after)
    result.insert(position + 1, new_item)
    return result


def remove(items, item):
    result = list(items)
    if item in result:
        result.remove(item)
    return result


def move_after(items, after, item):
    if after == item:
        return list(items)
    return insert_after(remove(items, item), after, item)


def remap(items, mapping):
    """Replace every id by ``mapping[id]``, e.g. when copying a board.

    A missing id raises ``KeyError``: the sequence references something that
    was not copied, which means the source board was already inconsistent.
    """
    return [mapping[item] for item in items]
