import os
from unittest.mock import patch

import pytest

from suite_context.timeout_config import Timeouts, _get_timeout


def test_default_when_unset():
    with patch.dict(os.environ, {}, clear=True):
        assert _get_timeout("SUITE_TIMEOUT_SHORT", 10) == 10


def test_override_from_env():
    with patch.dict(os.environ, {"SUITE_TIMEOUT_SHORT": "2.5"}):
        assert _get_timeout("SUITE_TIMEOUT_SHORT", 10) == 2.5


@pytest.mark.parametrize("value", ["abc", "0", "-3"])
def test_invalid_override_uses_default(value):
    with patch.dict(os.environ, {"SUITE_TIMEOUT_LONG": value}):
        assert _get_timeout("SUITE_TIMEOUT_LONG", 60) == 60


def test_short_is_shorter_than_long():
    assert 0 < Timeouts.SHORT <= Timeouts.LONG
