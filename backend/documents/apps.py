from django.apps import AppConfig
from django.core import checks
from django.test.signals import setting_changed


class DocumentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'documents'
    verbose_name = 'Documents & signing'

    def ready(self):
        from .config import check_signing_config, reset_signing_config

        checks.register(check_signing_config, checks.Tags.compatibility)

        def _reset_config(setting, **kwargs):
            if setting == 'SIGNDESK':
                reset_signing_config()

        setting_changed.connect(_reset_config, weak=False, dispatch_uid='documents.reset_signing_config')
