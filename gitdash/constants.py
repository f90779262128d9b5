"""Application constants - centralized configuration values."""

# =============================================================================
# Upstream page sizes
# =============================================================================
MAX_PAGE_SIZE = 100  # GitHub's per_page ceiling
PULLS_PER_STATE_PAGE = 50  # Each half of a state=all listing
MAX_COMBINED_PULLS = 100

VALID_PULL_STATES = ("open", "closed", "all")

# =============================================================================
# API Timeouts (in seconds)
# =============================================================================
HTTPX_TIMEOUT = 10.0

# =============================================================================
# Session & Security
# =============================================================================
SESSION_COOKIE_NAME = "gitdash_session"
SESSION_KEY_PREFIX = "gitdash:session:"
OAUTH_STATE_COOKIE_NAME = "gitdash_oauth"
OAUTH_STATE_MAX_AGE = 10 * 60  # 10 minutes to finish the GitHub consent screen

# =============================================================================
# GitHub OAuth
# =============================================================================
GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_OAUTH_SCOPE = "repo read:user"
GITHUB_API_VERSION = "2022-11-28"
