from django.apps import AppConfig


class StatusWorkflowConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'status_workflow'
    verbose_name = 'Status Workflow'
