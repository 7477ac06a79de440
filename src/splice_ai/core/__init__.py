"""Shared vocabulary: regions/snapshots, errors, ports and AppState."""
