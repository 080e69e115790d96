"""HTTP surface for the browser toolkit."""
