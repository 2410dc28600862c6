"""
Configuration - mediascout

Loads environment variables and runtime defaults. Command line flags
override these values.
"""

import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chromium/124.0.0.0 Safari/537.36"
)

USER_AGENT = os.getenv('MEDIASCOUT_USER_AGENT', DEFAULT_UA)

# Browser host settings
HEADLESS = os.getenv('MEDIASCOUT_HEADLESS', 'true').lower() == 'true'
NAVIGATION_TIMEOUT = int(os.getenv('MEDIASCOUT_NAVIGATION_TIMEOUT', '30000'))  # ms
WAIT_SECONDS = float(os.getenv('MEDIASCOUT_WAIT_SECONDS', '5'))
SCAN_TIMEOUT = float(os.getenv('MEDIASCOUT_SCAN_TIMEOUT', '10'))  # seconds for the in-page scanner

# Observation store: most recent network observations kept per context
MAX_OBSERVATIONS = int(os.getenv('MEDIASCOUT_MAX_OBSERVATIONS', '100'))

# Enrichment
PROBE_TIMEOUT = float(os.getenv('MEDIASCOUT_PROBE_TIMEOUT', '2.0'))  # seconds
MANIFEST_PREFIX_CHARS = 1024

# Reconstruction
CONNECTION_LIMIT = int(os.getenv('MEDIASCOUT_CONNECTION_LIMIT', '20'))

# Logging
LOG_LEVEL = os.getenv('MEDIASCOUT_LOG_LEVEL', 'INFO')
