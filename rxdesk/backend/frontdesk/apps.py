from django.apps import AppConfig


class FrontdeskConfig(AppConfig):
    name = 'frontdesk'
    verbose_name = 'Prescription front desk'
