#!/usr/bin/env python3
"""
Semantic store demo.
Embeds a handful of hard-coded facts, indexes them and runs one query.

Usage:
    python scripts/semantic_demo.py --query "Which planet is the largest?" -k 3
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from semstore.core.config import get_semantic_store, validate_config
from semstore.core.errors import SemanticStoreError

FACTS = {
    "fact_jupiter": "Jupiter is the largest planet in the solar system.",
    "fact_everest": "Mount Everest is the highest mountain above sea level.",
    "fact_nile": "The Nile is one of the longest rivers on Earth.",
    "fact_octopus": "An octopus has three hearts and blue blood.",
    "fact_honey": "Honey found in ancient tombs can still be edible.",
    "fact_light": "Light from the Sun takes about eight minutes to reach Earth.",
}

DEFAULT_QUERY = "Jupiter is the largest planet in the solar system."


def main(argv=None):
    """Ingest the demo facts and print the nearest neighbours of one query."""
    parser = argparse.ArgumentParser(description="Semantic store demo over hard-coded facts")
    parser.add_argument("--query", default=DEFAULT_QUERY, help="Query text to search for")
    parser.add_argument("-k", type=int, default=3, help="Number of neighbours to return (default: 3)")
    parser.add_argument("--skip-ingest", action="store_true",
                        help="Query records already persisted instead of ingesting the demo facts")
    args = parser.parse_args(argv)

    issues = validate_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        sys.exit(1)

    try:
        store = get_semantic_store()

        if not args.skip_ingest:
            store.ingest_many(FACTS)
            print(f"✓ Ingested {len(FACTS)} facts (dimension {store.records.dimension})")

        results = store.query(args.query, args.k)
    except SemanticStoreError as e:
        print(f"ERROR: {type(e).__name__}: {e}")
        sys.exit(1)

    print(f"Query: {args.query}")
    for rank, neighbor in enumerate(results, start=1):
        print(f"  {rank}. {neighbor.id}  distance={neighbor.distance:.4f}")

    return results


if __name__ == "__main__":
    main()
