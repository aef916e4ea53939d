"""
Search a Company Knowledge Base

Builds the RAG context a reply would receive for a post and prints it.

Usage:
    python scripts/search_knowledge.py --company-id <uuid> "How much does the team plan cost?"
    python scripts/search_knowledge.py --company-id <uuid> "refund policy" --threshold 0.3
"""

import sys
import argparse
from pathlib import Path

from dotenv import load_dotenv

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from replydash.api.dependencies import build_rag_services

# Load environment
load_dotenv()


def search(company_id: str, query: str, top_k: int, threshold: float):
    """Run one context build and display it."""
    print(f"\nQuery: '{query}'")
    print("-" * 80)

    services = build_rag_services()
    context = services.context_builder.build_context(
        company_id, query, max_chunks=top_k, similarity_threshold=threshold
    )

    if not context.has_context:
        print("No context found")
        return

    print(f"Found {len(context.chunks)} chunks:\n")
    for i, chunk in enumerate(context.chunks, 1):
        print(f"Result {i}:")
        print(f"  Similarity: {chunk.get('similarity', 0):.3f}")
        print(f"  Source: {chunk.get('filename') or 'Unknown'}")
        print(f"  Text: {chunk['content'][:150]}...")
        print()

    print("Prompt section:")
    print("-" * 80)
    print(context.as_prompt_section())


def main():
    parser = argparse.ArgumentParser(description="Preview RAG context for a post")
    parser.add_argument("query", help="Post text to find context for")
    parser.add_argument("--company-id", required=True, help="Company UUID")
    parser.add_argument("--top-k", type=int, default=10, help="Maximum chunks")
    parser.add_argument("--threshold", type=float, default=0.7, help="Minimum similarity")
    args = parser.parse_args()

    search(args.company_id, args.query, args.top_k, args.threshold)


if __name__ == "__main__":
    main()
