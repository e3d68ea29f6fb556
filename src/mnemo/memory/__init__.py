"""Memory system: markdown documents, mutations and the vector index.

Layout:
    ~/.mnemo/memory/
    ├── user.md                        # Always injected first into context
    ├── trip.md                        # One document per entity, flat frontmatter
    └── .versions/                     # Timestamped backups (10 per document)

    ~/.mnemo/memory_index.db           # SQLite chunk embeddings, keyed by file + hash
"""
