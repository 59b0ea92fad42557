"""Direct dependency reports from Maven dependency:tree output."""

__version__ = "1.0.0"
