"""Content Compliance MCP App — pure Python config, no custom JS/CSS."""

from mcpbundles_app_ui import App, Card, DarkTheme


class ContentComplianceApp(App):
    """Interactive compliance dashboard — tabbed engine and views from library."""

    name = "Content Compliance"
    subtitle = "111-point SEO & AI discoverability checklist"
    theme = DarkTheme(
        accent="#8b5cf6",
        bg_page="#0f172a",
        bg_card="#1e293b",
        bg_hover="#253048",
        text_primary="#f1f5f9",
        text_secondary="#e2e8f0",
        text_muted="#94a3b8",
        border="#334155",
        success="#10b981",
        warning="#f59e0b",
        error="#ef4444",
        chart_colors=[
            "#8b5cf6", "#10b981", "#f59e0b", "#ef4444",
            "#3b82f6", "#06b6d4", "#f97316", "#ec4899",
        ],
    )

    layout = [Card(title="")]

    tool_name = "open_compliance_app"
    tabs = [
        {"id": "overview", "label": "Overview", "tool": "open_compliance_app", "type": "dashboard"},
        {
            "id": "evaluate", "label": "Evaluate", "tool": "compliance_evaluate", "type": "search",
            "needsArgs": True,
            "searchPlaceholder": "Paste content to score against the checklist...",
        },
        {
            "id": "optimize", "label": "Optimize", "tool": "compliance_optimize", "type": "search",
            "needsArgs": True,
            "searchPlaceholder": "Paste content to optimize...",
        },
        {"id": "checklist", "label": "Checklist", "tool": "compliance_catalog", "type": "table"},
        {"id": "history", "label": "History", "tool": "compliance_history", "type": "table", "defaultArgs": {"limit": 20}},
        {"id": "trends", "label": "Trends", "tool": "compliance_rule_trends", "type": "table", "defaultArgs": {"days": 30}},
        {"id": "tools", "label": "Tools", "tool": None, "type": "tools"},
    ]
    footer_text = "Meta · Open Graph · Schema · AI · Vitals · Structure · Voice · Technical"

    tool_catalog_intro = (
        "This server provides <strong>6 tools</strong> your AI can call directly. "
        "One opens this interactive app, 3 work on content you pass in, and 2 are <strong>stateful</strong> — "
        "they read scores recorded in a local database. Content itself is never stored. "
        "All tools are <strong>read-only</strong>: optimization returns new content and leaves yours untouched."
    )
    tool_catalog = [
        {"name": "open_compliance_app", "label": "Open Compliance App", "icon": "\U0001f4ca", "desc": "Opens this dashboard with the checklist overview and recent scores.", "usage": "No arguments needed — just call it.", "source": "Local"},
        {"name": "compliance_evaluate", "label": "Evaluate", "icon": "✅", "desc": "Scores content against all 111 rules and lists what to add for every unresolved one.", "usage": 'compliance_evaluate(content="# My post ...", threshold=90)', "source": "Rule catalog"},
        {"name": "compliance_optimize", "label": "Optimize", "icon": "\U0001f6e0️", "desc": "Adds the missing sections and tags pass by pass until the target score is reached or the retry budget runs out.", "usage": 'compliance_optimize(content="# My post ...", target_score=90, max_retries=5)', "source": "Rule catalog"},
        {"name": "compliance_catalog", "label": "Checklist", "icon": "\U0001f4cb", "desc": "Every rule with its category, what satisfies it and the marker remediation adds.", "usage": 'compliance_catalog(category="Voice Search")', "source": "Rule catalog"},
        {"name": "compliance_history", "label": "History", "icon": "\U0001f4c8", "desc": "Recent evaluations and optimizations with their final scores and unresolved rules.", "usage": 'compliance_history(kind="optimization", limit=20)', "source": "Local SQLite", "stateful": True},
        {"name": "compliance_rule_trends", "label": "Rule Trends", "icon": "\U0001f504", "desc": "Which rules are most often left unresolved across recent reports.", "usage": "compliance_rule_trends(days=30, limit=10)", "source": "Local SQLite", "stateful": True},
    ]
