import pytest

from scrapekit.errors import LimitReached, ScrapeKitError
from scrapekit.limits import check_limit


@pytest.mark.parametrize("count", [10, 11])
def test_limit_reached(count):
    with pytest.raises(LimitReached) as exc:
        check_limit(10, count)
    assert exc.value.max_items == 10
    assert exc.value.item_count == count


@pytest.mark.parametrize("max_items, count", [(10, 9), (None, 1000), (None, 0)])
def test_limit_not_reached(max_items, count):
    assert check_limit(max_items, count) is None


def test_limit_is_a_signal_not_an_error():
    assert not issubclass(LimitReached, ScrapeKitError)
