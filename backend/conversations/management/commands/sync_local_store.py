from django.core.management.base import BaseCommand

from conversations.store import DatabaseConversationStore, LocalConversationStore, sync_local_to_database


class Command(BaseCommand):
    help = "Push conversations written to the local JSON store into the database."

    def add_arguments(self, parser):
        parser.add_argument("--data-dir", help="local store directory (default: DATA_DIR/local)")

    def handle(self, *args, **options):
        local = LocalConversationStore(options.get("data_dir"))
        result = sync_local_to_database(local, DatabaseConversationStore())
        self.stdout.write(self.style.SUCCESS(
            f"Synced {result['synced']} conversations, {result['failed']} failed"
        ))
