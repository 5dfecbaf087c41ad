"""Retrieval evaluation runner.

This script:
- Loads a JSONL dataset of {query, relevant_ids, answer?}
- Runs each query through create_retrieve_fn against the configured database
- Computes precision@k, recall@k, context faithfulness and mean distance
- Gates on configured thresholds and exits with a non-zero code if failing

Configuration is read from pgrag.config.settings.* (EVAL_ variables).

Usage:
  python -m pgrag.evals.run_retrieval [--dataset PATH] [--k 3]
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pgrag.config import settings
from pgrag.db import session_scope
from pgrag.errors import MissingCredential, RagError
from pgrag.evals.scoring import score_rag_results
from pgrag.query import RetrieveFn, create_retrieve_fn

logger = logging.getLogger(__name__)


def load_jsonl(path: Path) -> List[Dict[str, Any]]:
    """Load a JSONL file into a list of dicts.

    Ignores empty lines; lines that fail to parse are logged and skipped.

    Args:
        path: Path to the .jsonl dataset.

    Returns:
        List[Dict[str, Any]]: Parsed rows.
    """
    rows: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError as e:
                logger.warning("Skipping malformed line %d in %s: %s", lineno, path, e)
    return rows


def evaluate_rows(rows: List[Dict[str, Any]], retrieve: RetrieveFn, k: int) -> Dict[str, float]:
    """Run every dataset row through retrieve and average the metrics.

    Rows without a query are skipped.

    Args:
        rows: Dataset rows with "query", "relevant_ids" and optional "answer".
        retrieve: Retrieval function (query, k) -> chunks.
        k: Cutoff for precision/recall.

    Returns:
        Dict[str, float]: Mean metric values keyed by metric name, plus "queries".
    """
    totals = {
        "precision_at_k": 0.0,
        "recall_at_k": 0.0,
        "context_faithfulness": 0.0,
        "avg_relevance_score": 0.0,
    }
    n = 0
    for row in rows:
        query = str(row.get("query", "")).strip()
        if not query:
            continue
        relevant = {str(x) for x in row.get("relevant_ids") or []}
        answer = str(row.get("answer", ""))
        result = score_rag_results(retrieve(query, k), relevant, answer, k)
        for name in totals:
            totals[name] += getattr(result, name)
        n += 1

    means = {name: (value / n if n else 0.0) for name, value in totals.items()}
    means["queries"] = float(n)
    return means


def main(argv: Optional[List[str]] = None) -> int:
    """Run the evaluation workflow end-to-end.

    Returns:
        int: Exit code (0=success, 1=gate failed, 2=error).
    """
    parser = argparse.ArgumentParser(description="Evaluate retrieval quality against a JSONL dataset.")
    parser.add_argument("--dataset", default=settings.EVAL_DATASET_PATH, help="Path to JSONL dataset")
    parser.add_argument("--k", type=int, default=settings.EVAL_K, help="Retrieval cutoff")
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    ds_path = Path(args.dataset)
    if not ds_path.exists():
        print(f"[EVAL][ERROR] dataset not found: {ds_path}", flush=True)
        return 2
    rows = load_jsonl(ds_path)
    if not rows:
        print(f"[EVAL][ERROR] empty dataset: {ds_path}", flush=True)
        return 2

    print(f"[EVAL] Running {len(rows)} queries (k={args.k})...", flush=True)
    try:
        with session_scope() as db:
            scores = evaluate_rows(rows, create_retrieve_fn(db), args.k)
    except MissingCredential as e:
        print(f"[EVAL][ERROR] {e}", flush=True)
        return 2
    except RagError:
        logger.exception("Retrieval failed during evaluation")
        return 2

    print("[EVAL] Scores:")
    for name, value in scores.items():
        print(f"  - {name}: {value:.3f}")

    min_prec = settings.EVAL_MIN_PRECISION_AT_K
    min_rec = settings.EVAL_MIN_RECALL_AT_K
    if scores["precision_at_k"] < min_prec or scores["recall_at_k"] < min_rec:
        print(
            f"[EVAL][GATE] FAILED thresholds: precision_at_k>={min_prec}, recall_at_k>={min_rec}",
            flush=True,
        )
        return 1

    print("[EVAL][GATE] PASSED.", flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
