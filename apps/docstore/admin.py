from django.contrib import admin

from .models import Document


# --- Document Admin -------------------------------------------------------
@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = (
        "doc_id",
        "collection",
        "short_data",
        "principals_count",
        "created_at",
    )
    list_filter = (
        "collection",
        ("created_at", admin.DateFieldListFilter),
    )
    search_fields = ("doc_id", "collection")
    readonly_fields = ("collection", "doc_id", "created_at", "updated_at")
    ordering = ("-created_at",)

    # --- Shorten payload for display ---
    def short_data(self, obj):
        text = str(obj.data)
        return (text[:60] + "...") if len(text) > 60 else text
    short_data.short_description = "Data"

    def principals_count(self, obj):
        return len(obj.read_principals or [])
    principals_count.short_description = "Readers"
