from django.db import models
from django.utils import timezone


class BannerConfigDocument(models.Model):
    """
    Stored banner configuration blob for the database config store.

    One row per store key; the whole JSON document is read and written at once.
    ``version`` is bumped on every write and used as the write precondition.
    """

    key = models.CharField(
        max_length=100,
        unique=True,
        help_text="Config store key (BANNER_CONFIG_KEY)"
    )
    document = models.JSONField(
        default=dict,
        blank=True,
        help_text="Full banner config document ({'specific_banners': {...}})"
    )
    version = models.PositiveIntegerField(
        default=0,
        help_text="Incremented on every write"
    )

    # Timestamps
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def banner_count(self):
        banners = (self.document or {}).get('specific_banners')
        return len(banners) if isinstance(banners, dict) else 0

    def __str__(self):
        return f"Banner config '{self.key}' (v{self.version})"

    class Meta:
        ordering = ['key']
        verbose_name = 'Banner Config Document'
        verbose_name_plural = 'Banner Config Documents'
