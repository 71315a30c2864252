"""Text, JSON and SARIF renderers."""
