import os

from django.contrib.staticfiles.management.commands.runserver import Command as StaticRunserverCommand


class Command(StaticRunserverCommand):
    """runserver bound to CHATBRAIN_HOST / PORT when no address is given."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.default_addr = os.getenv("CHATBRAIN_HOST", "0.0.0.0")
        self.default_port = os.getenv("PORT", "3002")
