from django.contrib import admin
from .models import Video

@admin.register(Video)
class VideoAdmin(admin.ModelAdmin):
    # Status, disposition and the user-safe error at a glance
    list_display = (
        'id', 'title', 'uploaded_by', 'created_at',
        'processing_status', 'processing_progress',
        'sensitivity_status', 'sensitivity_score', 'processing_error',
    )
    list_filter = ('processing_status', 'sensitivity_status', 'category')
    search_fields = ('id', 'title', 'original_name')
    readonly_fields = (
        'metadata', 'frame_results', 'processing_error_detail',
        'created_at', 'updated_at', 'processed_at', 'queued_at',
    )
