"""Application-wide constants.

This module centralizes all magic numbers and configuration constants
to ensure a single source of truth and easier maintenance.

Durations are in seconds unless the name says otherwise.
"""

# =============================================================================
# Fetch Configuration
# =============================================================================

# Default timeout for a single page fetch (either strategy)
DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0

# Bounds accepted for a directive timeout
MIN_FETCH_TIMEOUT_SECONDS = 5.0
MAX_FETCH_TIMEOUT_SECONDS = 120.0

# How long the renderer waits for a directive's wait-for selector
WAIT_FOR_SELECTOR_TIMEOUT_SECONDS = 10.0

# Settle time after the wait-for selector appeared
WAIT_FOR_SELECTOR_SETTLE_SECONDS = 2.0

# Infinite-scroll defaults and bounds
DEFAULT_MAX_SCROLLS = 5
MAX_SCROLLS_LIMIT = 20
DEFAULT_SCROLL_DELAY_SECONDS = 2.0
MIN_SCROLL_DELAY_SECONDS = 0.5
MAX_SCROLL_DELAY_SECONDS = 10.0

# Browser viewport used by the rendering strategy
RENDER_VIEWPORT = (1920, 1080)

# Part of the directive timeout kept back for reading the DOM and quitting the browser
RENDER_TEARDOWN_RESERVE_SECONDS = 0.5

# =============================================================================
# Search & Crawl Configuration
# =============================================================================

# Timeout for fetching a search engine result page
SEARCH_PAGE_TIMEOUT_SECONDS = 15.0

# Timeout for fetching one candidate site during a crawl
SITE_FETCH_TIMEOUT_SECONDS = 20.0

# Delay between consecutive search engines (be respectful to search engines)
SEARCH_ENGINE_DELAY_SECONDS = 2.0

# Delay between consecutive candidate site fetches
SITE_FETCH_DELAY_SECONDS = 3.0

# Default / max number of results for one search
DEFAULT_MAX_RESULTS = 10
MAX_RESULTS_LIMIT = 100

# Default engines when a request names none
DEFAULT_SEARCH_ENGINES = ("google", "bing")

# Snippet window around a result title in the result page text (chars)
SNIPPET_CHARS_BEFORE_TITLE = 100
SNIPPET_CHARS_AFTER_TITLE = 300
SNIPPET_FALLBACK_CHARS = 200

# Query length bounds (validation collaborator)
MIN_QUERY_LENGTH_CHARS = 2
MAX_QUERY_LENGTH_CHARS = 500

# =============================================================================
# Rate Limiting
# =============================================================================

# General tier: points per window, window length, block once exhausted
GENERAL_RATE_LIMIT_POINTS = 10
GENERAL_RATE_LIMIT_WINDOW_SECONDS = 60
GENERAL_RATE_LIMIT_BLOCK_SECONDS = 15 * 60

# Scrape tier: fewer points, longer window, longer block
SCRAPE_RATE_LIMIT_POINTS = 5
SCRAPE_RATE_LIMIT_WINDOW_SECONDS = 5 * 60
SCRAPE_RATE_LIMIT_BLOCK_SECONDS = 30 * 60

# =============================================================================
# Enrichment
# =============================================================================

# Timeout for a single enrichment provider call
ENRICHMENT_TIMEOUT_SECONDS = 10.0

# Default number of leads for a lead search
DEFAULT_LEAD_RESULTS = 20

# Cost per enriched record, USD (published per-1000 pricing / 1000)
GOOGLE_PLACES_COST_PER_RECORD = 0.017
HUNTER_COST_PER_RECORD = 0.008
APOLLO_COST_PER_RECORD = 0.049
YELP_COST_PER_RECORD = 0.0
SCRAPING_COST_PER_RECORD = 0.0

# =============================================================================
# Service
# =============================================================================

SERVICE_NAME = "web-harvester"
SERVICE_VERSION = "1.0.0"
