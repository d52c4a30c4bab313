"""Content Compliance MCP Server.

Score content against a 111-rule SEO and AI-discoverability checklist and
iteratively add the missing pieces until it reaches a target score.
"""

__version__ = "0.1.0"


def get_app_html() -> str:
    """Return the MCP App HTML content. Re-renders each call for hot reload."""
    from .app_definition import ContentComplianceApp

    return ContentComplianceApp().render()
