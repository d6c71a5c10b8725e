from django.apps import AppConfig


class SchedulingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "backend.scheduling"
    label = "scheduling"
    verbose_name = "Kitchen scheduling"
