"""Editor engine services."""
