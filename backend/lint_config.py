import os
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LintConfig(BaseModel):
    """Tunables shared by the scans. Read from the environment by `from_env`."""

    max_items: int = Field(default=50, ge=1, le=50)
    frequent_name_threshold: int = Field(default=3, ge=1)
    yield_every: int = Field(default=500, ge=1)
    hidden_yield_every: int = Field(default=1000, ge=1)

    @classmethod
    def from_env(cls) -> "LintConfig":
        config = cls(
            max_items=int(os.getenv("LINT_MAX_ITEMS", "50")),
            frequent_name_threshold=int(os.getenv("LINT_FREQUENT_NAME_THRESHOLD", "3")),
            yield_every=int(os.getenv("LINT_YIELD_EVERY", "500")),
            hidden_yield_every=int(os.getenv("LINT_HIDDEN_YIELD_EVERY", "1000")),
        )
        logger.info(f"🧮 Lint config: {config.model_dump()}")
        return config


DEFAULT_CONFIG = LintConfig()
