import pytest

from timelinemonitor import configure
from timelinemonitor import span as span_module


@pytest.fixture(autouse=True)
def fresh_state():
    previous = configure(enabled=True, strict=True)
    span_module._default_timeline.set(None)
    yield
    span_module._default_timeline.set(None)
    configure(**previous)
