"""Command-line tools for the legal document corpus.

- ``python -m src.cli ingest <files...>``: ingest PDF/DOCX files, awaiting each run
- ``python -m src.cli reprocess <id>``: re-run ingestion, replacing chunks
- ``python -m src.cli list``: status listing with chunk counts
- ``python -m src.cli search <query>``: semantic search over stored chunks
- ``python -m src.cli delete <id>``: cascade delete
- ``python -m src.cli stats``: corpus statistics

Heavy imports (chromadb, provider SDKs) are deferred until a command runs.
"""
