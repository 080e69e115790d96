"""Session guard, tab lifecycle and extraction operations."""
