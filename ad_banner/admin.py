from django.contrib import admin
from django.utils.html import format_html, format_html_join
from .models import BannerConfigDocument
from . import registry


@admin.register(BannerConfigDocument)
class BannerConfigDocumentAdmin(admin.ModelAdmin):
    list_display = ('key', 'banner_total', 'version', 'updated_at')
    search_fields = ('key',)
    ordering = ['key']
    readonly_fields = ('version', 'created_at', 'updated_at', 'banner_schedule')

    fieldsets = (
        ('Config Document', {
            'fields': ('key', 'document'),
            'description': 'Raw banner config. Prefer the panel API: edits here bypass validation.'
        }),
        ('Schedule Preview', {
            'fields': ('banner_schedule',),
        }),
        ('Versioning', {
            'fields': ('version', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def banner_total(self, obj):
        """Number of configured banners"""
        return obj.banner_count()
    banner_total.short_description = 'Banners'

    def banner_schedule(self, obj):
        """Preview of every banner rule, in display order"""
        entries = registry.list_entries(registry.banners_of(obj.document))
        if not entries:
            return "No banners configured"

        rows = format_html_join(
            '',
            '<tr><td><img src="{}" style="width: 100px; height: auto; border-radius: 4px;" /></td>'
            '<td>{}</td><td>{}</td><td>{}</td><td>{}</td></tr>',
            (
                (entry.id, 'Active' if entry.active else 'Inactive', entry.day, entry.priority, entry.asset_ref)
                for entry in entries
            ),
        )
        return format_html(
            '<table><tr><th>Preview</th><th>Status</th><th>Day</th><th>Priority</th><th>Asset</th></tr>{}</table>',
            rows,
        )
    banner_schedule.short_description = 'Banner Schedule'

    def save_model(self, request, obj, form, change):
        # Keep the version token moving so in-flight panel writes notice the edit
        if change:
            obj.version += 1
        super().save_model(request, obj, form, change)


# Customize admin site headers
admin.site.site_header = "Banner Rotation"
admin.site.site_title = "Banner Admin"
admin.site.index_title = "Promotional Banner Management"
