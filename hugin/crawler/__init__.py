"""hugin.crawler: frontier, compliance, rendering and the crawl loop."""
