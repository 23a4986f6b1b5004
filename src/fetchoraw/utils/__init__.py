"""Path, URL, filesystem and manifest helpers."""
