from django.contrib import admin
from .models import Document, Signer, Field, AuditLogEntry


class SignerInline(admin.TabularInline):
    model = Signer
    extra = 0
    fields = ('sign_order', 'name', 'email', 'status', 'signed_at')
    readonly_fields = ('sign_order', 'status', 'signed_at')


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ('title', 'owner', 'status', 'page_count', 'created_at', 'updated_at')
    search_fields = ('title', 'owner__username', 'file_name')
    list_filter = ('status', 'created_at')
    readonly_fields = ('status', 'page_count', 'last_sign_order', 'created_at', 'updated_at')
    inlines = [SignerInline]
    fieldsets = (
        ('Document Info', {
            'fields': ('owner', 'title', 'file', 'file_name')
        }),
        ('Status', {
            'fields': ('status', 'page_count', 'last_sign_order')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Signer)
class SignerAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'document', 'sign_order', 'status', 'token_short', 'signed_at')
    list_filter = ('status',)
    search_fields = ('name', 'email', 'document__title')
    readonly_fields = ('token', 'status', 'signed_at', 'ip_address', 'user_agent', 'created_at')
    fieldsets = (
        ('Signer Info', {
            'fields': ('document', 'name', 'email', 'sign_order')
        }),
        ('Status', {
            'fields': ('status', 'token', 'signed_at')
        }),
        ('Audit Data', {
            'fields': ('ip_address', 'user_agent', 'created_at'),
            'classes': ('collapse',)
        }),
    )

    def token_short(self, obj):
        """Display shortened token."""
        return f"{obj.token[:8]}..." if obj.token else '-'
    token_short.short_description = 'Token'


@admin.register(Field)
class FieldAdmin(admin.ModelAdmin):
    list_display = ('field_type', 'document', 'signer', 'page_number', 'required')
    list_filter = ('field_type', 'required')
    search_fields = ('document__title', 'signer__name', 'signer__email')
    fieldsets = (
        ('Field Info', {
            'fields': ('document', 'signer', 'field_type', 'required')
        }),
        ('Position & Size', {
            'fields': ('page_number', 'x', 'y', 'width', 'height')
        }),
        ('Value', {
            'fields': ('value',)
        }),
    )


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ('action', 'document', 'signer', 'ip_address', 'created_at')
    list_filter = ('action', 'created_at')
    search_fields = ('action', 'details', 'document__title', 'ip_address')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
