"""Render tree of a board: board -> columns -> cards.

Components only react to state events. They never read the server, so the
tree always mirrors what ``StateManager`` knows.
"""

import logging

logger = logging.getLogger(__name__)


class Component:
    def __init__(self, state, element_id=None):
        self.state = state
        self.id = element_id
        self.parent = None
        self.children = []
        self.destroyed = False
        self._unwatch = []

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.id}>"

    def watch(self, event, handler):
        self._unwatch.append(self.state.watch(event, handler))

    def child_ids(self):
        return [child.id for child in self.children]

    def attach(self, child):
        if child.parent is not None and child.parent is not self:
            child.parent.detach(child)
        child.parent = self
        if child not in self.children:
            self.children.append(child)

    def detach(self, child):
        if child in self.children:
            self.children.remove(child)
        child.parent = None

    def reorder(self, order, registry):
        """Make the children match ``order``.

        Children missing from ``order`` are detached, listed components that
        are rendered somewhere else are adopted.
        """
        for child in list(self.children):
            if child.id not in order:
                self.detach(child)
        for element_id in order:
            child = registry.get(element_id)
            if child is not None and child.parent is not self:
                self.attach(child)
        position = {element_id: index for index, element_id in enumerate(order)}
        self.children.sort(key=lambda child: position[child.id])

    def destroy(self):
        for child in list(self.children):
            child.destroy()
        for unwatch in self._unwatch:
            unwatch()
        self._unwatch = []
        if self.parent is not None:
            self.parent.detach(self)
        self.destroyed = True


class CardComponent(Component):
    def __init__(self, board, element_id):
        super().__init__(board.state, element_id)
        self.board = board
        self.watch(f"cards[{element_id}]:updated", self.on_updated)
        self.watch(f"cards[{element_id}]:deleted", self.on_deleted)

    @property
    def element(self):
        return self.state.cards.get(self.id, {})

    def place(self):
        column = self.board.columns.get(self.element.get("column"))
        if column is None:
            return
        if self.id in column.order:
            column.reorder(column.order, self.board.cards)
        else:
            column.attach(self)

    def on_updated(self, element, changed):
        if "column" in changed:
            self.place()

    def on_deleted(self, element, changed):
        self.destroy()

    def destroy(self):
        self.board.cards.pop(self.id, None)
        super().destroy()


class ColumnComponent(Component):
    def __init__(self, board, element_id):
        super().__init__(board.state, element_id)
        self.board = board
        self.watch(f"columns[{element_id}]:updated", self.on_updated)
        self.watch(f"columns[{element_id}]:deleted", self.on_deleted)

    @property
    def element(self):
        return self.state.columns.get(self.id, {})

    @property
    def order(self):
        return self.element.get("sequence", [])

    def place(self):
        if self.id in self.board.order:
            self.board.reorder(self.board.order, self.board.columns)
        self.reorder(self.order, self.board.cards)

    def on_updated(self, element, changed):
        if "sequence" in changed:
            self.reorder(self.order, self.board.cards)

    def on_deleted(self, element, changed):
        self.destroy()

    def destroy(self):
        self.board.columns.pop(self.id, None)
        super().destroy()


class BoardComponent(Component):
    """Root of the tree, owns the registries of all column and card components."""

    def __init__(self, state):
        super().__init__(state)
        self.columns = {}
        self.cards = {}
        self.watch("board:created", self.on_board_updated)
        self.watch("board:updated", self.on_board_updated)
        self.watch("board:deleted", self.on_board_deleted)
        self.watch("columns:created", self.on_column_created)
        self.watch("cards:created", self.on_card_created)
        for element_id in list(state.columns):
            self.on_column_created(state.columns[element_id], {})
        for element_id in list(state.cards):
            self.on_card_created(state.cards[element_id], {})
        self.reorder(self.order, self.columns)

    @property
    def order(self):
        return self.state.board.get("sequence", [])

    def on_board_updated(self, element, changed):
        if "id" in changed and self.id is None:
            self.id = element["id"]
        if "sequence" in changed:
            self.reorder(self.order, self.columns)

    def on_board_deleted(self, element, changed):
        logger.info("Board %s was deleted", self.id)
        self.destroy()

    def on_column_created(self, element, changed):
        if element["id"] in self.columns:
            return
        column = ColumnComponent(self, element["id"])
        self.columns[column.id] = column
        column.place()

    def on_card_created(self, element, changed):
        if element["id"] in self.cards:
            return
        card = CardComponent(self, element["id"])
        self.cards[card.id] = card
        card.place()

    def destroy(self):
        # Detached components are not children, so they are destroyed explicitly
        for component in [*self.cards.values(), *self.columns.values()]:
            component.destroy()
        super().destroy()
