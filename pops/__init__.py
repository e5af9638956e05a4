"""POPS: Notion mirror and named-environment core."""
