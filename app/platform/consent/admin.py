"""
Django Admin for the consent log
"""

from django.contrib import admin

from .models import ConsentLog


@admin.register(ConsentLog)
class ConsentLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'created_at', 'short_hash', 'categories_display', 'version_hash', 'source']
    list_filter = ['source']
    search_fields = ['consent_hash']
    date_hierarchy = 'created_at'
    readonly_fields = ['id', 'created_at', 'consent_hash', 'categories', 'version_hash', 'source']

    @admin.display(description='Consent hash')
    def short_hash(self, obj):
        return f"{obj.consent_hash[:16]}..."

    @admin.display(description='Categories')
    def categories_display(self, obj):
        return obj.categories_display

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
