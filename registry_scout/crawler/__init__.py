# registry_scout/crawler/__init__.py
"""Browser-driven crawl of the registry site: navigation, extraction, state machine."""
