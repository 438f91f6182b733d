import time

from django.db import models


def now_timestamp():
    """Current time in microseconds since the epoch."""
    return time.time_ns() // 1000


def next_timestamp(previous=0):
    """A timestamp that is strictly greater than ``previous``.

    Two saves within the same microsecond must still be told apart by the
    incremental sync, so the clock is never allowed to stand still.
    """
    return max(now_timestamp(), (previous or 0) + 1)


class TafelModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class VersionedModel(TafelModel):
    """Model that clients synchronise on via ``timemodified``."""

    timemodified = models.BigIntegerField(default=0, db_index=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.timemodified = next_timestamp(self.timemodified)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = {
                *update_fields,
                "timemodified",
                "updated_at",
            }
        super().save(*args, **kwargs)

    def touch(self):
        self.save(update_fields=["timemodified"])
