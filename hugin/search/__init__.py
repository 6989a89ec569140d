"""hugin.search: relevance scoring and paginated search over stored pages."""
