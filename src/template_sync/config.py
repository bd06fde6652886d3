"""Remote connection configuration.

Reads template API settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    TEMPLATE_SYNC_API_URL: Template API base URL (required)
    TEMPLATE_SYNC_TOKEN: Bearer token (optional)
    TEMPLATE_SYNC_INSECURE: Skip SSL verification (optional, default: false)
    TEMPLATE_SYNC_DEBUG: Enable debug mode (optional, default: false)
    TEMPLATE_SYNC_TIMEOUT: Request timeout in seconds (optional, default: 30)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


@dataclass
class Config:
    api_url: str
    token: str = ""
    insecure: bool = False
    debug: bool = False
    timeout: int = 30


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If URL format is invalid or the timeout is out of range.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if not (1 <= config.timeout <= 300):
        raise ValueError(
            f"Invalid timeout {config.timeout}: must be between 1 and 300 seconds"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def load_config(
    url: str | None = None,
    token: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override API URL.
        token: Override bearer token.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``remote`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the API URL is missing after checking all sources,
            or any value is invalid.
    """
    fb = yaml_fallbacks or {}

    api_url = url or os.getenv("TEMPLATE_SYNC_API_URL") or fb.get("url")
    if not api_url:
        raise ValueError(
            "Template API URL not found. Set TEMPLATE_SYNC_API_URL environment "
            "variable, pass --url CLI argument, or add 'remote.url' to config.yml."
        )

    api_token = token or os.getenv("TEMPLATE_SYNC_TOKEN") or fb.get("token") or ""

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if insecure:
        final_insecure = True
    else:
        env_insecure = get_bool_env("TEMPLATE_SYNC_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("TEMPLATE_SYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    timeout_raw = os.getenv("TEMPLATE_SYNC_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = int(timeout_raw)
        except ValueError:
            raise ValueError(
                f"Invalid TEMPLATE_SYNC_TIMEOUT '{timeout_raw}': must be a number between 1 and 300"
            ) from None
    elif "timeout" in fb:
        final_timeout = int(fb["timeout"])
    else:
        final_timeout = 30

    config = Config(
        api_url=api_url,
        token=api_token.strip(),
        insecure=final_insecure,
        debug=final_debug,
        timeout=final_timeout,
    )

    validate_config(config)

    return config
