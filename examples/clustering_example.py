"""
Example demonstrating hybrid tab clustering.

This example shows:
1. Building an orchestrator from settings (AI services are optional)
2. Clustering a batch of tabs under a deadline
3. Per-tab enrichment statuses
4. Closing tabs and exporting a report
"""

import json

from tab_companion.agents import ScanBatch, TabItem, build_orchestrator
from tab_companion.config import get_settings, setup_logging


def main():
    """Run tab clustering example."""

    settings = get_settings()
    setup_logging(settings.log_level)
    if not settings.openai_api_key:
        print("NOTE: OPENAI_API_KEY not set, clustering will use TF-IDF and domains only")
        print()

    print("=" * 80)
    print("Tab Clustering Example")
    print("=" * 80)
    print()

    tabs = [
        TabItem(
            id=1,
            url="https://neo4j.com/docs/getting-started/",
            title="Neo4j Documentation - Graph Database",
            text="Neo4j is a native graph database. Learn nodes, relationships and the Cypher query language.",
        ),
        TabItem(
            id=2,
            url="https://neo4j.com/docs/cypher-manual/current/",
            title="Cypher Query Language Manual",
            text="Cypher is the graph query language of Neo4j. Match nodes and relationships in the graph database.",
        ),
        TabItem(
            id=3,
            url="https://react.dev/learn",
            title="Quick Start - React",
            text="React components, props and state. Learn hooks like useState and useEffect to build interfaces.",
        ),
        TabItem(
            id=4,
            url="https://react.dev/reference/react/hooks",
            title="Built-in React Hooks",
            text="Hooks let components use state and effects. The useState and useEffect hooks in React components.",
        ),
        TabItem(
            id=5,
            url="https://www.allrecipes.com/recipe/banana-bread/",
            title="Banana Bread Recipe",
            text="Bake moist banana bread with ripe bananas, butter, sugar and flour.",
        ),
        TabItem(id=6, url="https://mail.google.com/mail/u/0/", title="Inbox", extraction_failed=True),
    ]

    orchestrator = build_orchestrator(settings)
    batch = ScanBatch(
        items=tabs,
        deadline_seconds=settings.scan_deadline_seconds,
        concurrency=settings.scan_concurrency,
    )
    result = orchestrator.run_sync(batch)

    titles = {tab.id: tab.title for tab in tabs}
    for cluster in result.clusters:
        print(f"{cluster.label} [{cluster.id}] ({cluster.size} tabs, confidence {cluster.confidence:.2f})")
        for tab_id in cluster.member_ids:
            print(f"  - {titles[tab_id]}")
        for bullet in cluster.summary:
            print(f"    • {bullet}")
        print()

    print(f"Elapsed: {result.elapsed_seconds:.2f}s (deadline exceeded: {result.deadline_exceeded})")
    print()

    # Close the mail tab and export what is left
    result = result.without_items([6])
    print(json.dumps(result.to_report(tabs), indent=2))


if __name__ == "__main__":
    main()
