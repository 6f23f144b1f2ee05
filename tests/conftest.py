import pytest
from hypothesis import settings

from tickmark_core.config import TickmarkConfig
from tickmark_core.document import Document

# Prevent Hypothesis from writing a local example database (e.g. `.hypothesis/`) during tests.
settings.register_profile("tickmark-tests", database=None, deadline=None)
settings.load_profile("tickmark-tests")


def make_document(*lines: str) -> Document:
    """Build a Document from individual lines."""
    return Document(list(lines))


@pytest.fixture
def config() -> TickmarkConfig:
    return TickmarkConfig()


@pytest.fixture
def nested_document() -> Document:
    return make_document(
        "- □ Parent",
        "  - □ Child 1",
        "  - □ Child 2",
        "  - □ Child 3",
    )
