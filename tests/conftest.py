"""
Test configuration and fixtures for the stepguard test suite.
"""
import sys
import pytest
from pathlib import Path
from loguru import logger

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stepguard import GuardSettings, StepContext


class CustomError(Exception):
    pass


class CustomSubError(CustomError):
    pass


@pytest.fixture
def settings() -> GuardSettings:
    """Short polling settings so timing tests stay fast."""
    return GuardSettings(default_timeout_ms=1000, poll_interval_ms=5, invert_timeout_ms=200)


@pytest.fixture
def context(settings) -> StepContext:
    """Return a step context with a few variables and the custom error types."""
    ctx = StepContext(variables={"x": 1, "user": {"name": "bob", "roles": ["admin", "dev"]}}, settings=settings)
    ctx.register_type(CustomError)
    ctx.register_type(CustomSubError)
    yield ctx
    ctx.cancel_pending()


@pytest.fixture
def calls():
    """A list the step actions append to."""
    return []


@pytest.fixture
def log_messages():
    """Collect stepguard log messages while library logging is enabled."""
    messages = []
    logger.enable("stepguard")
    sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)
    logger.disable("stepguard")
