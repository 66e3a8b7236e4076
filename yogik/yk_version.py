"""Single version source for the Yogik practice timer."""

VERSION: str = "1.2.0"
