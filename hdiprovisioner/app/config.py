import os


class Config:
    """Base configuration class with common settings."""

    # Azure credentials
    AZURE_SUBSCRIPTION_ID = os.getenv("AZURE_SUBSCRIPTION_ID", "")
    AZURE_TENANT_ID = os.getenv("AZURE_TENANT_ID", "")
    AZURE_CLIENT_ID = os.getenv("AZURE_CLIENT_ID", "")
    AZURE_CLIENT_SECRET = os.getenv("AZURE_CLIENT_SECRET", "")

    # Seconds between polls of long-running operations
    AZURE_POLLING_INTERVAL = int(os.getenv("AZURE_POLLING_INTERVAL", "30"))

    # Operation timeouts in seconds
    HDI_CREATE_TIMEOUT = int(os.getenv("HDI_CREATE_TIMEOUT", str(60 * 60)))
    HDI_READ_TIMEOUT = int(os.getenv("HDI_READ_TIMEOUT", str(5 * 60)))
    HDI_UPDATE_TIMEOUT = int(os.getenv("HDI_UPDATE_TIMEOUT", str(60 * 60)))
    HDI_DELETE_TIMEOUT = int(os.getenv("HDI_DELETE_TIMEOUT", str(60 * 60)))

    # Logging settings
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @classmethod
    def get_credentials(cls):
        """Collect the service principal settings into a credentials dict."""
        return {
            "tenant_id": cls.AZURE_TENANT_ID,
            "client_id": cls.AZURE_CLIENT_ID,
            "client_secret": cls.AZURE_CLIENT_SECRET,
        }

    @classmethod
    def get_timeouts(cls):
        """Build the per-operation timeout mapping at runtime."""
        return {
            "create": cls.HDI_CREATE_TIMEOUT,
            "read": cls.HDI_READ_TIMEOUT,
            "update": cls.HDI_UPDATE_TIMEOUT,
            "delete": cls.HDI_DELETE_TIMEOUT,
        }


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    DEBUG = True

    # Never talk to a real subscription from tests
    AZURE_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
    AZURE_TENANT_ID = ""
    AZURE_CLIENT_ID = ""
    AZURE_CLIENT_SECRET = ""
    AZURE_POLLING_INTERVAL = 0

    HDI_CREATE_TIMEOUT = 30
    HDI_READ_TIMEOUT = 30
    HDI_UPDATE_TIMEOUT = 30
    HDI_DELETE_TIMEOUT = 30


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    TESTING = False


# Configuration dictionary for easy selection
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": ProductionConfig,
}


def get_config(config_name=None):
    """Get configuration class based on environment.

    Args:
        config_name: Configuration name ('development', 'testing', 'production').
                    If None, uses HDI_PROVISIONER_ENV environment variable or
                    defaults to 'production'.

    Returns:
        Configuration class.
    """
    if config_name is None:
        config_name = os.getenv("HDI_PROVISIONER_ENV", "production")

    config_class = config.get(config_name, ProductionConfig)
    return config_class
