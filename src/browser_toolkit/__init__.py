"""Page-rendering primitives served over HTTP from a single WebDriver session."""
