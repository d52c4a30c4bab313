"""Rule catalog — the 111-point content compliance checklist.

The checklist is one declarative table: each row names the rule, the
syntactic signal that satisfies it, and the remediation marker whose
presence also satisfies it. Conditional rows are excluded from scoring
until either shows up.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Category, RuleStatus
from .predicates import (
    HAS_CONVERSATIONAL_PHRASE,
    HAS_HOW_WHAT_WHY,
    HAS_KEYWORD_TOPIC,
    HAS_MARKDOWN_HEADING,
    HAS_QUESTION,
    NON_EMPTY,
    Predicate,
    contains,
    contains_all,
    lacks,
    longer_than,
    shorter_than,
)

logger = logging.getLogger(__name__)


class Rule(BaseModel):
    """One compliance check."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    rule_id: str
    category: Category
    item: str
    description: str
    signal: Optional[Predicate] = Field(None, description="Syntactic check that satisfies the rule; None means marker-only")
    marker: str = Field(min_length=1)
    weight: int = Field(1, ge=0)
    failure_mode: RuleStatus = RuleStatus.PENDING
    conditional: bool = False

    @field_validator("failure_mode")
    @classmethod
    def _failure_mode_is_unresolved(cls, value: RuleStatus) -> RuleStatus:
        if value not in (RuleStatus.PENDING, RuleStatus.FAILED):
            raise ValueError("failure_mode must be pending or failed")
        return value

    def passes(self, content: str) -> bool:
        if self.marker in content:
            return True
        return self.signal is not None and self.signal(content)

    def applies(self, content: str) -> bool:
        """Conditional rules only count once their signal or marker is present."""
        if not self.conditional:
            return True
        return self.passes(content)

    @property
    def signal_description(self) -> str:
        return self.signal.description if self.signal is not None else "marker only"


class RuleCatalog:
    """Immutable, ordered collection of rules, shared read-only across requests."""

    def __init__(self, rules: Iterable[Rule]):
        self._rules = tuple(rules)
        by_id = {}
        for rule in self._rules:
            if rule.rule_id in by_id:
                raise ValueError(f"duplicate rule id: {rule.rule_id}")
            by_id[rule.rule_id] = rule
        self._by_id = MappingProxyType(by_id)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def get(self, rule_id: str) -> Rule:
        return self._by_id[rule_id]

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def categories(self) -> tuple[Category, ...]:
        seen: dict[Category, None] = {}
        for rule in self._rules:
            seen.setdefault(rule.category, None)
        return tuple(seen)

    def in_category(self, category: Category) -> tuple[Rule, ...]:
        return tuple(r for r in self._rules if r.category == category)

    @property
    def max_points(self) -> int:
        return sum(r.weight for r in self._rules)


PENDING = "pending"
FAILED = "failed"
CONDITIONAL = "conditional"

# (id, item, description, signal, marker, mode)
CHECKLIST: dict[Category, list[tuple]] = {
    Category.META_TAGS: [
        ("meta-1", "Dynamic title tags", "Content exists to derive a title from", NON_EMPTY, "🏷️ Enhanced Meta: Title", FAILED),
        ("meta-2", "Meta descriptions with entities", "SEO meta preview with description meta tag",
         contains_all("🏷️ SEO Meta Tags Preview", 'meta name="description"'), "🏷️ SEO Meta Tags Preview", PENDING),
        ("meta-3", "Author attribution", "Author and expertise signals",
         contains("author:", "by "), "🏷️ Enhanced Meta: Author", PENDING),
        ("meta-4", "Language specification", "Language meta tags for international SEO",
         contains("lang=", '<meta name="language', "<html lang"), '<meta name="language"', PENDING),
        ("meta-5", "Mobile viewport optimization", "Viewport meta tag for mobile responsiveness",
         contains('meta name="viewport"', "width=device-width"), 'meta name="viewport"', PENDING),
        ("meta-6", "Character encoding specification", "UTF-8 character encoding declaration",
         contains("charset=", "<meta charset"), "<meta charset", PENDING),
        ("meta-7", "Theme color optimization", "Brand color for mobile browsers",
         contains('<meta name="theme-color'), "🏷️ Enhanced Meta: Theme Color", CONDITIONAL),
        ("meta-8", "Application name meta", "Application name for mobile bookmarks",
         contains('<meta name="application-name'), "🏷️ Enhanced Meta: App Name", CONDITIONAL),
        ("meta-9", "Referrer policy configuration", "Privacy-conscious referrer policy",
         contains('<meta name="referrer', "referrerpolicy="), "🏷️ Enhanced Meta: Referrer", CONDITIONAL),
        ("meta-10", "Content Security Policy", "CSP declaration",
         contains("content-security-policy"), "🏷️ Enhanced Meta: CSP", PENDING),
        ("meta-11", "Social image alt text", "Accessible alt text for social sharing images",
         contains_all('alt="', "og:image"), "🏷️ Enhanced Meta: Alt Text", PENDING),
        ("meta-12", "Geolocation meta tags", "Location-based meta information",
         contains("geo.position"), "🏷️ Enhanced Meta: Location", CONDITIONAL),
        ("meta-13", "Robots meta optimization", "Search engine crawling directives",
         contains('<meta name="robots'), "🏷️ Enhanced Meta: Robots", CONDITIONAL),
        ("meta-14", "Canonical URL specification", "Canonical link for duplicate content prevention",
         contains('<link rel="canonical'), "🏷️ Enhanced Meta: Canonical", CONDITIONAL),
        ("meta-15", "Meta keywords optimization", "Relevant keywords for topic signals",
         HAS_KEYWORD_TOPIC, "🏷️ Enhanced Meta: Keywords", PENDING),
    ],
    Category.OPEN_GRAPH: [
        ("og-1", "Complete OG protocol", "All required Open Graph tags present",
         contains_all('property="og:title', 'property="og:description', 'property="og:image'),
         "🏷️ Enhanced Social: Open Graph", PENDING),
        ("og-2", "Twitter card implementation", "Twitter Card meta tags",
         contains('name="twitter:card'), "🏷️ Enhanced Social: Twitter", PENDING),
        ("og-3", "Featured images optimization", "Featured image for social sharing",
         contains('property="og:image'), "🏷️ Enhanced Social: Featured Image", PENDING),
        ("og-4", "LinkedIn optimization", "LinkedIn-specific sharing", None, "🏷️ Enhanced Social: LinkedIn", CONDITIONAL),
        ("og-5", "Facebook optimization", "Facebook sharing", None, "🏷️ Enhanced Social: Facebook", CONDITIONAL),
        ("og-6", "Pinterest optimization", "Pinterest Rich Pins", None, "🏷️ Enhanced Social: Pinterest", CONDITIONAL),
        ("og-7", "WhatsApp sharing optimization", "WhatsApp link preview", None, "🏷️ Enhanced Social: WhatsApp", CONDITIONAL),
        ("og-8", "Instagram optimization", "Instagram sharing", None, "🏷️ Enhanced Social: Instagram", CONDITIONAL),
        ("og-9", "Telegram sharing", "Telegram instant view", None, "🏷️ Enhanced Social: Telegram", CONDITIONAL),
        ("og-10", "Reddit optimization", "Reddit link preview", None, "🏷️ Enhanced Social: Reddit", CONDITIONAL),
        ("og-11", "YouTube metadata", "Video metadata for YouTube",
         contains("video"), "🏷️ Enhanced Social: YouTube", CONDITIONAL),
        ("og-12", "AMP optimization", "Accelerated Mobile Pages sharing", None, "🏷️ Enhanced Social: AMP", CONDITIONAL),
        ("og-13", "Web Stories compatibility", "Web Stories format support", None, "🏷️ Enhanced Social: Web Stories", CONDITIONAL),
        ("og-14", "Rich media optimization", "Images and videos for social sharing",
         contains("img", "video"), "🏷️ Enhanced Social: Rich Media", PENDING),
        ("og-15", "Social sharing buttons", "Integrated social sharing",
         contains("<button") & contains("share", "tweet", "social"), "🏷️ Enhanced Social: Sharing Buttons", CONDITIONAL),
    ],
    Category.STRUCTURED_DATA: [
        ("schema-1", "Article schema", "Article structured data",
         contains('@type": "Article'), "🏷️ Enhanced Schema: Article", CONDITIONAL),
        ("schema-2", "FAQ schema", "FAQ section with questions",
         contains_all("❓ Frequently Asked Questions", "?") | contains('@type": "FAQPage'),
         "❓ Frequently Asked Questions", PENDING),
        ("schema-3", "How-To schema", "Step-by-step guide with numbered instructions",
         contains("📝 Step-by-Step Guide"), "📝 Step-by-Step Guide", PENDING),
        ("schema-4", "Review schema", "Review structured data",
         contains('@type": "Review'), '"@type": "Review"', PENDING),
        ("schema-5", "Product schema", "Product structured data",
         contains('@type": "Product'), '"@type": "Product"', PENDING),
        ("schema-6", "Video schema", "Video structured data",
         contains('@type": "VideoObject'), '"@type": "VideoObject"', PENDING),
        ("schema-7", "Knowledge graph optimization", "Entity relationships for knowledge graphs",
         contains('@type": "Thing'), '"@type": "Thing"', PENDING),
        ("schema-8", "Organization schema", "Organization markup",
         contains('@type": "Organization'), "🏷️ Enhanced Schema: Organization", CONDITIONAL),
        ("schema-9", "Person schema", "Author and person entity markup",
         contains("author", "by "), "🏷️ Enhanced Schema: Person", PENDING),
        ("schema-10", "Breadcrumb schema", "Navigation breadcrumb structured data",
         contains('@type": "BreadcrumbList', "breadcrumb"), "🏷️ Enhanced Schema: Breadcrumb", CONDITIONAL),
        ("schema-11", "Website schema", "Website structured data",
         contains('@type": "WebSite'), "🏷️ Enhanced Schema: Website", CONDITIONAL),
        ("schema-12", "Course schema", "Educational course structured data",
         contains("course", "lesson"), "🏷️ Enhanced Schema: Course", CONDITIONAL),
        ("schema-13", "Event schema", "Event structured data",
         contains("event", "date"), "🏷️ Enhanced Schema: Event", CONDITIONAL),
        ("schema-14", "Job posting schema", "Job listing structured data",
         contains("job", "position"), "🏷️ Enhanced Schema: Jobs", CONDITIONAL),
        ("schema-15", "Local business schema", "Local business markup",
         contains("business", "address"), "🏷️ Enhanced Schema: Business", CONDITIONAL),
    ],
    Category.AI_ASSISTANT: [
        ("ai-1", "Content segmentation", "Content segmented for AI parsing",
         contains("section"), "🏷️ Enhanced AI: Segmentation", PENDING),
        ("ai-2", "Q&A format optimization", "Question-answer structure",
         HAS_QUESTION, "🏷️ Enhanced AI: Q&A Format", PENDING),
        ("ai-3", "Conversational markers", "Natural language flow",
         contains_all("you", "we", "."), "🏷️ Enhanced AI: Conversational", CONDITIONAL),
        ("ai-4", "Context signals", "Enough context for AI comprehension",
         longer_than(100), "🏷️ Enhanced AI: Context", CONDITIONAL),
        ("ai-5", "Entity recognition", "Entities clarified with context",
         contains("("), "🏷️ Enhanced AI: Entities", PENDING),
        ("ai-6", "Topic modeling", "Clear topic structure",
         contains_all("#", "##"), "🏷️ Enhanced AI: Topics", CONDITIONAL),
        ("ai-7", "Semantic relationships", "Connections between concepts", None, "🏷️ Enhanced AI: Semantic", CONDITIONAL),
        ("ai-8", "Natural language patterns", "Conversation patterns for AI",
         HAS_HOW_WHAT_WHY, "🏷️ Enhanced AI: Natural Language", CONDITIONAL),
        ("ai-9", "Intent classification", "User intent signals", None, "🏷️ Enhanced AI: Intent", CONDITIONAL),
        ("ai-10", "Multilingual support", "Multilingual optimization",
         contains("lang=", "en-US"), "🏷️ Enhanced AI: Multilingual", CONDITIONAL),
        ("ai-11", "Semantic clustering", "Content grouped by similarity", None, "🏷️ Enhanced AI: Clustering", CONDITIONAL),
        ("ai-12", "Key insights section", "AI discovery insights",
         contains("🔍 Key Insights for AI Discovery"), "🔍 Key Insights for AI Discovery", PENDING),
        ("ai-13", "Citation tracking", "Source citations and references",
         contains("source:", "ref:"), "🏷️ Enhanced AI: Citations", PENDING),
        ("ai-14", "Expertise signals", "Author expertise and authority",
         contains("expert", "certified"), "🏷️ Enhanced AI: Expertise", PENDING),
        ("ai-15", "Real-time updates", "Content freshness signals",
         contains("updated:", "2024"), "🏷️ Enhanced AI: Fresh Content", PENDING),
    ],
    Category.CORE_WEB_VITALS: [
        ("cwv-1", "Loading performance", "Fast loading", None, "🏷️ Enhanced Performance: Loading", CONDITIONAL),
        ("cwv-2", "Visual stability", "Layout shift optimization", None, "🏷️ Enhanced Performance: Stability", CONDITIONAL),
        ("cwv-3", "Interactivity improvement", "Input delay optimization", None, "🏷️ Enhanced Performance: Interactivity", CONDITIONAL),
        ("cwv-4", "Font loading optimization", "Web font preloading",
         contains_all('<link rel="preload', "font"), "🏷️ Enhanced Performance: Fonts", CONDITIONAL),
        ("cwv-5", "Scroll behavior enhancement", "Scroll performance", None, "🏷️ Enhanced Performance: Scroll", CONDITIONAL),
        ("cwv-6", "CSS/JS optimization", "Minified assets", None, "🏷️ Enhanced Performance: Assets", CONDITIONAL),
        ("cwv-7", "Image optimization", "Lazy-loaded or modern-format images",
         contains("<img") & contains('loading="lazy"', "webp"), "🏷️ Enhanced Performance: Images", CONDITIONAL),
        ("cwv-8", "Resource hints", "DNS prefetch and preconnect hints",
         contains('<link rel="dns-prefetch', '<link rel="preconnect'), "🏷️ Enhanced Performance: Hints", CONDITIONAL),
        ("cwv-9", "Critical resource prioritization", "Above-the-fold prioritization", None, "🏷️ Enhanced Performance: Critical", CONDITIONAL),
        ("cwv-10", "Connection optimization", "HTTP/2 and connection reuse", None, "🏷️ Enhanced Performance: Connection", CONDITIONAL),
        ("cwv-11", "Compression optimization", "Gzip/Brotli compression", None, "🏷️ Enhanced Performance: Compression", CONDITIONAL),
        ("cwv-12", "Cache optimization", "Caching strategy", None, "🏷️ Enhanced Performance: Cache", CONDITIONAL),
    ],
    Category.CONTENT_STRUCTURE: [
        ("cs-1", "Hierarchical headers", "Heading structure for content hierarchy",
         HAS_MARKDOWN_HEADING, "🏷️ Enhanced Structure: Headings", PENDING),
        ("cs-2", "Auto-generated TOC", "Table of contents with navigation links",
         contains("📋 Table of Contents"), "📋 Table of Contents", PENDING),
        ("cs-3", "Reading progress indicators", "Progress indicators for long-form content",
         contains("progress"), "🏷️ Enhanced Structure: Progress", CONDITIONAL),
        ("cs-4", "Semantic HTML structure", "Semantic HTML tags",
         contains("<article>", "<section>", "<header>"), "🏷️ Enhanced Structure: Semantic", CONDITIONAL),
        ("cs-5", "Microdata implementation", "HTML microdata",
         contains("itemscope", "itemtype"), "🏷️ Enhanced Structure: Microdata", CONDITIONAL),
        ("cs-6", "Rich snippet optimization", "Rich search results", None, "🏷️ Enhanced Structure: Rich Snippets", CONDITIONAL),
        ("cs-7", "Accessibility optimization", "Accessible to assistive technologies",
         contains('alt="', "aria-"), "🏷️ Enhanced Structure: Accessibility", CONDITIONAL),
        ("cs-8", "Print stylesheets", "Print media styling",
         contains("@media print"), "🏷️ Enhanced Structure: Print", CONDITIONAL),
        ("cs-9", "Content delivery optimization", "CDN delivery", None, "🏷️ Enhanced Structure: CDN", CONDITIONAL),
        ("cs-10", "Keyword density optimization", "Keyword density for topic relevance",
         HAS_KEYWORD_TOPIC, "🏷️ Enhanced Structure: Keywords", PENDING),
        ("cs-11", "User experience signals", "UX signals", None, "🏷️ Enhanced Structure: UX", CONDITIONAL),
        ("cs-12", "Content summary", "Content statistics and reading information",
         contains("📊 Content Summary"), "📊 Content Summary", PENDING),
    ],
    Category.VOICE_SEARCH: [
        ("vs-1", "Natural language structure", "Natural, conversational language",
         HAS_CONVERSATIONAL_PHRASE, "🏷️ Enhanced Voice: Natural Language", PENDING),
        ("vs-2", "Question targeting", "Content asks the questions voice users ask",
         HAS_QUESTION, "🏷️ Enhanced Voice: Questions", FAILED),
        ("vs-3", "Snippet formatting", "Short enough to read out as a snippet",
         shorter_than(160), "🏷️ Enhanced Voice: Snippets", CONDITIONAL),
        ("vs-4", "Local SEO integration", "Location-based voice optimization",
         contains("location", "address"), "🏷️ Enhanced Voice: Local", CONDITIONAL),
        ("vs-5", "Conversational optimization", "Conversational AI interactions",
         HAS_CONVERSATIONAL_PHRASE, "🏷️ Enhanced Voice: Conversational", CONDITIONAL),
        ("vs-6", "Featured snippet optimization", "Featured snippet extraction", None, "🏷️ Enhanced Voice: Featured Snippets", CONDITIONAL),
        ("vs-7", "Answer box optimization", "Answer box placement", None, "🏷️ Enhanced Voice: Answer Box", CONDITIONAL),
        ("vs-8", "People Also Ask optimization", "Targets People Also Ask",
         HAS_QUESTION, "🏷️ Enhanced Voice: People Also Ask", PENDING),
        ("vs-9", "Related questions structure", "Related question structure",
         contains("related:", "also ask"), "🏷️ Enhanced Voice: Related Questions", PENDING),
        ("vs-10", "Conversational keywords", "Long-tail conversational keywords",
         HAS_HOW_WHAT_WHY, "🏷️ Enhanced Voice: Keywords", CONDITIONAL),
        ("vs-11", "Contextual answers", "Contextual answer formatting",
         HAS_QUESTION, "🏷️ Enhanced Voice: Contextual", CONDITIONAL),
        ("vs-12", "Smart speaker optimization", "Alexa, Google Assistant, Siri",
         contains("voice assistant"), "🏷️ Enhanced Voice: Smart Speakers", CONDITIONAL),
    ],
    Category.TECHNICAL_SEO: [
        ("tech-1", "Image alt text", "Alt text for every image",
         contains('alt="', "![") | lacks("src="), "🏷️ Enhanced SEO: Alt Text", PENDING),
        ("tech-2", "Internal linking structure", "Internal links for topic authority",
         contains("<a href", "["), "🏷️ Enhanced SEO: Internal Links", PENDING),
        ("tech-3", "External citations", "External links and citations",
         contains("http", "source:"), "🏷️ Enhanced SEO: External Links", PENDING),
        ("tech-4", "Page speed optimization", "Page speed", None, "🏷️ Enhanced SEO: Speed", CONDITIONAL),
        ("tech-5", "Mobile responsiveness", "Responsive design",
         contains('meta name="viewport'), "🏷️ Enhanced SEO: Mobile", CONDITIONAL),
        ("tech-6", "SSL/HTTPS security", "HTTPS delivery", None, "🏷️ Enhanced SEO: HTTPS", CONDITIONAL),
        ("tech-7", "XML sitemap", "Sitemap coverage", None, "🏷️ Enhanced SEO: Sitemap", CONDITIONAL),
        ("tech-8", "Robots.txt optimization", "robots.txt configuration", None, "🏷️ Enhanced SEO: Robots", CONDITIONAL),
        ("tech-9", "Structured URLs", "Descriptive URL structure", None, "🏷️ Enhanced SEO: URLs", CONDITIONAL),
        ("tech-10", "HTTP status optimization", "Correct status codes", None, "🏷️ Enhanced SEO: HTTP Status", CONDITIONAL),
        ("tech-11", "Redirect chain optimization", "Short redirect chains", None, "🏷️ Enhanced SEO: Redirects", CONDITIONAL),
        ("tech-12", "Duplicate content prevention", "Canonical handling",
         contains('<link rel="canonical'), "🏷️ Enhanced SEO: Canonical", CONDITIONAL),
        ("tech-13", "Crawlability optimization", "Easily crawlable", None, "🏷️ Enhanced SEO: Crawling", CONDITIONAL),
        ("tech-14", "Indexability control", "Indexing directives",
         contains('<meta name="robots'), "🏷️ Enhanced SEO: Indexing", CONDITIONAL),
        ("tech-15", "International SEO", "Hreflang and international targeting",
         contains("hreflang", "lang="), "🏷️ Enhanced SEO: International", CONDITIONAL),
    ],
}


def _build_rule(category: Category, row: tuple) -> Rule:
    rule_id, item, description, signal, marker, mode = row
    return Rule(
        rule_id=rule_id,
        category=category,
        item=item,
        description=description,
        signal=signal,
        marker=marker,
        failure_mode=RuleStatus.FAILED if mode == FAILED else RuleStatus.PENDING,
        conditional=mode == CONDITIONAL,
    )


def build_catalog(table: Optional[dict[Category, list[tuple]]] = None) -> RuleCatalog:
    """Build a catalog from a checklist table (the default checklist if omitted)."""
    table = CHECKLIST if table is None else table
    rules = [_build_rule(category, row) for category, rows in table.items() for row in rows]
    return RuleCatalog(rules)


@lru_cache(maxsize=1)
def default_catalog() -> RuleCatalog:
    """The process-wide catalog, built on first use."""
    catalog = build_catalog()
    logger.debug("Rule catalog loaded: %d rules in %d categories", len(catalog), len(catalog.categories))
    return catalog
