"""Application Settings.

Process-wide settings read from the environment: the application name, the
translation cache bound and the logging options. Data source and terminology
configuration is loaded per command through the configuration manager.

Security Impact:
    - No credentials are held here; terminology headers stay in RetrievalConfig
"""

import os

# Application metadata
APP_NAME = "Clinical-Retrieval"

# Default bound of the library translation cache
DEFAULT_CACHE_MAX_ENTRIES = 256


class Settings:
    """Application settings loaded from the environment.

    Environment Variables:
        - CR_APP_NAME: Name shown by ``--version``
        - CR_CACHE_MAX_ENTRIES: Bound of the library translation cache
        - CR_LOG_LEVEL: Root log level (default INFO)
        - CR_LOG_JSON: "true" for JSON log lines
    """

    def __init__(self):
        self.app_name = os.getenv("CR_APP_NAME", APP_NAME)
        self.cache_max_entries = int(os.getenv("CR_CACHE_MAX_ENTRIES", str(DEFAULT_CACHE_MAX_ENTRIES)))

        # Logging
        self.log_level = os.getenv("CR_LOG_LEVEL", "INFO")
        self.log_json = os.getenv("CR_LOG_JSON", "false").lower() == "true"


# Global settings instance
settings = Settings()
