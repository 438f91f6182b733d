from django.core.management.base import BaseCommand

from tafel.core.board_manager import BoardManager
from tafel.core.models import Board


class Command(BaseCommand):
    help = "Create a default board with the Todo, Doing and Done columns"

    def add_arguments(self, parser):
        parser.add_argument(
            "--board-name",
            type=str,
            default="Default Board",
            help="Name of the default board (default: 'Default Board')",
        )

    def handle(self, *args, **options):
        board_name = options["board_name"]

        board = Board.objects.filter(name=board_name, template=False).first()
        if board:
            self.stdout.write(self.style.WARNING(f"Board already exists: {board.name}"))
            return

        board = BoardManager().create_board(
            name=board_name, description="Default kanban board"
        )
        self.stdout.write(self.style.SUCCESS(f"Created board: {board.name}"))
        for column in board.columns.all():
            self.stdout.write(self.style.SUCCESS(f"  Created column: {column.title}"))

        self.stdout.write(self.style.SUCCESS("\nDefault setup completed successfully!"))
