"""confgetter: HTTP artifact getters with YAML fragment extraction."""

__version__ = "0.1.0"
