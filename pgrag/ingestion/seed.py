"""Seed the rag_chunks table with sample documents.

Each sample document is re-indexed from scratch (its previous chunks are
deleted first), chunked with size=400 / overlap=100, embedded and upserted with
a `title` metadata key. Without OPENAI_API_KEY the script logs a warning and
exits successfully without touching the database.

Usage:
  python -m pgrag.ingestion.seed
"""
import logging
import sys
from typing import Dict, List, Optional

from pgrag.config import settings
from pgrag.db import init_db, session_scope
from pgrag.embedding import Embedder, get_default_embedder
from pgrag.errors import RagError
from pgrag.indexing import index_document
from pgrag.store import count_chunks

logger = logging.getLogger(__name__)

SEED_CHUNK_SIZE = 400
SEED_CHUNK_OVERLAP = 100

SAMPLE_DOCS: List[Dict[str, str]] = [
    {
        "id": "seed-typescript",
        "title": "Introduction to TypeScript",
        "content": """TypeScript is a strongly typed programming language that builds on JavaScript, giving you better tooling at any scale. TypeScript adds optional static typing and class-based object-oriented programming to the language. It is designed for the development of large applications and transcompiles to JavaScript.

TypeScript was developed by Microsoft and is maintained by them. It was first released in October 2012. The language is designed for development of large applications and transcompiles to JavaScript. As TypeScript is a superset of JavaScript, existing JavaScript programs are also valid TypeScript programs.

Key features of TypeScript include:
- Static type checking at compile time
- Object-oriented programming support with classes and interfaces
- Enhanced IDE support with intelligent code completion
- Better code organization through modules and namespaces
- Support for the latest ECMAScript features

TypeScript compiles to readable, standards-based JavaScript. You can use existing JavaScript libraries with TypeScript seamlessly.""",
    },
    {
        "id": "seed-react",
        "title": "React Framework Overview",
        "content": """React is a free and open-source front-end JavaScript library for building user interfaces based on components. It is maintained by Meta and a community of individual developers and companies. React can be used to develop single-page, mobile, or server-rendered applications.

React was created by Jordan Walke, a software engineer at Facebook (now Meta). It was first deployed on Facebook's News Feed in 2011 and later on Instagram in 2012. It was open-sourced at JSConf US in May 2013.

Core concepts in React:
- Components: Reusable pieces of UI that can be composed together
- JSX: A syntax extension that allows writing HTML-like code in JavaScript
- Virtual DOM: An efficient way to update the UI by minimizing direct DOM manipulation
- State: Data that changes over time and affects the rendered output
- Props: Data passed from parent to child components

React uses a declarative paradigm that makes your code more predictable and easier to debug.""",
    },
    {
        "id": "seed-postgres",
        "title": "PostgreSQL and pgvector",
        "content": """PostgreSQL is a powerful, open source object-relational database system that uses and extends the SQL language combined with many features that safely store and scale the most complicated data workloads. PostgreSQL has earned a strong reputation for its proven architecture, reliability, data integrity, robust feature set, and extensibility.

pgvector is an open-source extension for PostgreSQL that adds support for vector similarity search. It enables storing vector embeddings alongside your other data in PostgreSQL and performing efficient similarity searches.

Key features of pgvector:
- Supports exact and approximate nearest neighbor search
- Multiple distance metrics: L2, inner product, and cosine distance
- IVFFlat and HNSW indexing for fast approximate search
- Seamlessly integrates with existing PostgreSQL features
- Works with any embedding model output

Common use cases for pgvector include:
- Semantic search over documents
- Recommendation systems
- Image similarity search
- Retrieval-augmented generation (RAG) for LLM applications

The combination of PostgreSQL's reliability and pgvector's vector search capabilities makes it an excellent choice for production RAG applications.""",
    },
]


def seed(embedder: Optional[Embedder] = None) -> int:
    """Index every sample document and return the total row count afterwards."""
    embedder = embedder or get_default_embedder()
    for doc in SAMPLE_DOCS:
        with session_scope() as db:
            n = index_document(
                db,
                doc["id"],
                doc["content"],
                embedder=embedder,
                size=SEED_CHUNK_SIZE,
                overlap=SEED_CHUNK_OVERLAP,
                source=doc["title"],
                extra_metadata={"title": doc["title"]},
            )
        print(f"[SEED] {doc['title']} -> {n} chunks")

    with session_scope() as db:
        return count_chunks(db)


def main() -> int:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    embedder = get_default_embedder()
    if not embedder.has_credential():
        logger.warning("OPENAI_API_KEY not set - skipping seed")
        return 0

    logger.info("Using embedding model %s (dims=%d)", embedder.model, embedder.dims)
    init_db()
    try:
        total = seed(embedder)
    except RagError:
        logger.exception("Seed failed")
        return 1
    print(f"[DONE] Total chunks in database: {total}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
