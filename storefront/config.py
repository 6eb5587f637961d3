# storefront/config.py
import os
from dotenv import load_dotenv
load_dotenv()


def clean_env(name: str, default: str | None = None) -> str | None:
    """Read an env var, dropping surrounding whitespace and quotes.

    Values pasted into hosting dashboards often arrive as ``"abc"`` or with a
    trailing newline; both break drivers that expect the bare value.
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().strip('"').strip("'").strip()
    return value or default
