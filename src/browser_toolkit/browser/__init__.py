"""WebDriver session backends."""
