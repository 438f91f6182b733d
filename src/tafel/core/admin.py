from django.contrib import admin, messages

from .board_manager import BoardManager
from .models import Board, Card, Column, DiscussionMessage, HistoryEntry


class ColumnInline(admin.TabularInline):
    model = Column
    extra = 0
    fields = ["title", "locked", "options"]
    show_change_link = True


class CardInline(admin.TabularInline):
    model = Card
    extra = 0
    fields = ["title", "completed", "timemodified"]
    readonly_fields = ["timemodified"]
    show_change_link = True


class DiscussionMessageInline(admin.StackedInline):
    model = DiscussionMessage
    extra = 0
    fields = ["author", "content", "timecreated"]
    readonly_fields = ["timecreated"]


@admin.register(Board)
class BoardAdmin(admin.ModelAdmin):
    list_display = ["__str__", "template", "locked", "column_count", "timemodified"]
    list_filter = ["template", "locked"]
    search_fields = ["name", "description", "group_name"]
    readonly_fields = ["sequence", "timemodified", "created_at", "updated_at"]
    inlines = [ColumnInline]
    actions = ["save_as_template"]
    fieldsets = [
        (None, {"fields": ["name", "description", "template", "locked"]}),
        ("Scope", {"fields": ["user", "group_name"]}),
        ("Order", {"fields": ["sequence"]}),
        ("Timestamps", {"fields": ["timemodified", "created_at", "updated_at"]}),
    ]

    def column_count(self, obj):
        return obj.columns.count()

    column_count.short_description = "Columns"

    @admin.action(description="Save selected boards as templates")
    def save_as_template(self, request, queryset):
        for board in queryset:
            BoardManager(board, request.user).create_template()
        self.message_user(
            request,
            f"Created {queryset.count()} templates.",
            messages.SUCCESS,
        )


@admin.register(Column)
class ColumnAdmin(admin.ModelAdmin):
    list_display = ["title", "board", "locked", "card_count"]
    list_filter = ["board", "locked"]
    search_fields = ["title", "board__name"]
    inlines = [CardInline]
    fields = ["board", "title", "locked", "options", "sequence", "timemodified"]
    readonly_fields = ["sequence", "timemodified"]

    def card_count(self, obj):
        return obj.cards.count()

    card_count.short_description = "Cards"


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ["title", "column", "completed", "due_date", "message_count"]
    list_filter = ["board", "completed"]
    search_fields = ["title", "description"]
    readonly_fields = ["original_id", "timemodified", "created_at", "updated_at"]
    filter_horizontal = ["assignees"]
    inlines = [DiscussionMessageInline]
    fieldsets = [
        (None, {"fields": ["board", "column", "title", "description", "options"]}),
        ("State", {"fields": ["completed", "due_date", "assignees"]}),
        (
            "Metadata",
            {"fields": ["created_by", "original_id", "timemodified", "created_at", "updated_at"]},
        ),
    ]

    def message_count(self, obj):
        return obj.messages.count()

    message_count.short_description = "Messages"


@admin.register(HistoryEntry)
class HistoryEntryAdmin(admin.ModelAdmin):
    list_display = ["action", "type", "board", "card_id", "user_id", "timestamp"]
    list_filter = ["type", "action"]
    readonly_fields = [
        "board",
        "column_id",
        "card_id",
        "user_id",
        "affected_user_id",
        "action",
        "type",
        "parameters",
        "timestamp",
    ]

    def has_add_permission(self, request):
        return False
