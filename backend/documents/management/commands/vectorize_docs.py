from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from documents.indexer import DocumentIndexer


class Command(BaseCommand):
    help = "Index local files into the vector index from the shell."

    def add_arguments(self, parser):
        parser.add_argument("paths", nargs="+", help="files to index")
        parser.add_argument("--category", default="Knowledge Library")

    def handle(self, *args, **options):
        category = options["category"]
        if category not in settings.KNOWLEDGE_CATEGORIES:
            raise CommandError(f"Unknown category: {category}")

        indexer = DocumentIndexer()

        def report(progress):
            self.stdout.write(f"[{progress.progress:3d}%] {progress.status}: {progress.message}")

        failed = 0
        for raw in options["paths"]:
            path = Path(raw)
            if not path.is_file():
                self.stderr.write(f"Skipping {path}: not a file")
                failed += 1
                continue
            try:
                indexer.index_file(path.name, path.read_bytes(), category, on_progress=report)
            except Exception as exc:
                self.stderr.write(f"Failed to index {path}: {exc}")
                failed += 1

        if failed:
            raise CommandError(f"{failed} file(s) failed to index")
        self.stdout.write(self.style.SUCCESS("Done"))
